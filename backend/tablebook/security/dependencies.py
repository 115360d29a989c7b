import logging
import os

from fastapi import Header, HTTPException, status

from tablebook.booking.assignments import Identity


logger = logging.getLogger("tablebook.security")


def _is_dev_env() -> bool:
    return os.getenv("ENV", "dev").lower() in {"dev", "development", "local"}


def _parse_roles(raw_roles: str | None) -> frozenset[str]:
    if not raw_roles:
        return frozenset()
    return frozenset(role.strip() for role in raw_roles.split(",") if role.strip())


def require_identity(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_roles: str | None = Header(default=None, alias="X-User-Roles"),
) -> Identity:
    """Identity asserted by the upstream auth proxy."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "MISSING_IDENTITY",
                "human_message": "Sign in to manage reservations.",
            },
        )
    return Identity(user_id=user_id, roles=_parse_roles(x_user_roles))


def require_admin_api_key(
    x_admin_key: str | None = Header(default=None, alias="X-Admin-Key"),
) -> None:
    configured_key = os.getenv("ADMIN_API_KEY", "")

    if not configured_key:
        if _is_dev_env():
            logger.warning("ADMIN_API_KEY is not set in dev; allowing admin request without key.")
            return
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "ADMIN_AUTH_NOT_CONFIGURED",
                "human_message": "Admin API key is not configured.",
            },
        )

    if x_admin_key != configured_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "INVALID_ADMIN_API_KEY",
                "human_message": "Invalid admin API key.",
            },
        )
