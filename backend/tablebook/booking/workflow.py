from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from tablebook.booking.assignments import Identity, require_restaurant_access, resolve_access
from tablebook.booking.errors import AlreadyCancelledError, BookingValidationError, NotFoundError
from tablebook.booking.transactions import atomic, cancel_and_release
from tablebook.db.models import (
    ACTIVE_STATUSES,
    STATUS_CANCELLED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    Reservation,
)


VIEW_ACTIVE = "active"
VIEW_CANCELLED = "cancelled"
VIEW_ALL = "all"
RESERVATION_VIEWS = (VIEW_ACTIVE, VIEW_CANCELLED, VIEW_ALL)

logger = logging.getLogger("tablebook.booking.workflow")


def confirm_reservation(db: Session, identity: Identity, reservation_id: int) -> Reservation:
    """Move a pending reservation to confirmed.

    Confirming an already confirmed reservation is a no-op; cancelled
    reservations stay cancelled and raise AlreadyCancelledError.
    """
    with atomic(db):
        reservation = _find_reservation(db, reservation_id)
        require_restaurant_access(db, identity, reservation.restaurant_id)
        if reservation.status == STATUS_CANCELLED:
            raise AlreadyCancelledError("Cancelled reservations cannot be confirmed.")
        if reservation.status == STATUS_CONFIRMED:
            return reservation

        confirmed = (
            db.query(Reservation)
            .filter(Reservation.id == reservation.id)
            .filter(Reservation.status == STATUS_PENDING)
            .update({Reservation.status: STATUS_CONFIRMED}, synchronize_session=False)
        )
        db.expire(reservation, ["status"])
        if confirmed != 1 and reservation.status == STATUS_CANCELLED:
            raise AlreadyCancelledError("Cancelled reservations cannot be confirmed.")

    logger.info("Reservation confirmed reservation_id=%s by=%s", reservation.id, identity.user_id)
    return reservation


def staff_cancel_reservation(db: Session, identity: Identity, reservation_id: int) -> Reservation:
    with atomic(db):
        reservation = _find_reservation(db, reservation_id)
        require_restaurant_access(db, identity, reservation.restaurant_id)
        if reservation.status == STATUS_CANCELLED:
            raise AlreadyCancelledError("Reservation is already cancelled.")
        cancel_and_release(db, reservation)

    logger.info("Reservation cancelled by staff reservation_id=%s by=%s", reservation.id, identity.user_id)
    return reservation


def list_customer_reservations(
    db: Session, customer_id: str, show_cancelled: bool = False
) -> list[Reservation]:
    query = db.query(Reservation).filter(Reservation.customer_id == customer_id)
    if not show_cancelled:
        query = query.filter(Reservation.status.in_(ACTIVE_STATUSES))
    return query.order_by(Reservation.reservation_time, Reservation.id).all()


def list_staff_reservations(
    db: Session, identity: Identity, view: str = VIEW_ACTIVE
) -> list[Reservation]:
    view = (view or VIEW_ACTIVE).lower()
    if view not in RESERVATION_VIEWS:
        raise BookingValidationError(
            f"Unknown reservation view '{view}'. Use one of: {', '.join(RESERVATION_VIEWS)}."
        )

    restaurant_ids = resolve_access(identity).restaurant_ids(db)
    query = db.query(Reservation)
    if restaurant_ids is not None:
        if not restaurant_ids:
            return []
        query = query.filter(Reservation.restaurant_id.in_(restaurant_ids))

    if view == VIEW_ACTIVE:
        query = query.filter(Reservation.status.in_(ACTIVE_STATUSES))
    elif view == VIEW_CANCELLED:
        query = query.filter(Reservation.status == STATUS_CANCELLED)
    return query.order_by(Reservation.reservation_time, Reservation.id).all()


def _find_reservation(db: Session, reservation_id: int) -> Reservation:
    reservation = db.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation not found.")
    return reservation
