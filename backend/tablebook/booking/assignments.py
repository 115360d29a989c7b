from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from tablebook.booking.errors import UnauthorizedError
from tablebook.db.models import StaffAssignment


ROLE_ADMIN = "Admin"
ROLE_STAFF = "Staff"


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(min_length=1)
    roles: frozenset[str] = frozenset()

    def has_role(self, role: str) -> bool:
        return role.lower() in {r.lower() for r in self.roles}


class AccessPolicy(ABC):
    """Answers whether a staff identity may act on a restaurant's reservations."""

    @abstractmethod
    def can_act_on(self, db: Session, restaurant_id: int) -> bool:
        pass

    @abstractmethod
    def restaurant_ids(self, db: Session) -> set[int] | None:
        """Restaurants visible to this identity, or None for all of them."""


class AdminAccess(AccessPolicy):
    def can_act_on(self, db: Session, restaurant_id: int) -> bool:
        return True

    def restaurant_ids(self, db: Session) -> set[int] | None:
        return None


class AssignmentAccess(AccessPolicy):
    def __init__(self, staff_id: str):
        self.staff_id = staff_id

    def can_act_on(self, db: Session, restaurant_id: int) -> bool:
        return (
            db.query(StaffAssignment.id)
            .filter(StaffAssignment.staff_id == self.staff_id)
            .filter(StaffAssignment.restaurant_id == restaurant_id)
            .first()
            is not None
        )

    def restaurant_ids(self, db: Session) -> set[int] | None:
        rows = (
            db.query(StaffAssignment.restaurant_id)
            .filter(StaffAssignment.staff_id == self.staff_id)
            .all()
        )
        return {restaurant_id for (restaurant_id,) in rows}


def resolve_access(identity: Identity) -> AccessPolicy:
    if identity.has_role(ROLE_ADMIN):
        return AdminAccess()
    if identity.has_role(ROLE_STAFF):
        return AssignmentAccess(staff_id=identity.user_id)
    raise UnauthorizedError("Staff or admin role required.")


def require_restaurant_access(db: Session, identity: Identity, restaurant_id: int) -> None:
    if not resolve_access(identity).can_act_on(db, restaurant_id):
        raise UnauthorizedError("You are not assigned to this restaurant.")
