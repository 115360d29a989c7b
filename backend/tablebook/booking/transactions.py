from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from typing import Any, Iterator

from pydantic import BaseModel, Field
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from tablebook.booking.availability import get_restaurant
from tablebook.booking.clock import (
    horizon_end,
    is_within_horizon,
    parse_booking_date,
    respects_lead_time,
    to_restaurant_local,
)
from tablebook.booking.errors import (
    AlreadyCancelledError,
    BookingValidationError,
    DateOutOfRangeError,
    InfrastructureError,
    NotFoundError,
    SlotUnavailableError,
    TooLateToEditError,
)
from tablebook.db.models import STATUS_CANCELLED, STATUS_PENDING, Reservation, TimeSlot


EDIT_GUARD_MINUTES = 30
SLOT_UNAVAILABLE_MESSAGE = "The selected time slot is invalid or no longer available."

logger = logging.getLogger("tablebook.booking.transactions")


class CreateReservationArgs(BaseModel):
    restaurant_id: int
    date: str = Field(min_length=1)
    slot_id: int
    party_size: int = Field(gt=0)


class RebookReservationArgs(BaseModel):
    slot_id: int
    party_size: int = Field(gt=0)


def parse_create_reservation_args(raw_args: dict[str, Any]) -> CreateReservationArgs:
    return CreateReservationArgs.model_validate(raw_args)


def parse_rebook_reservation_args(raw_args: dict[str, Any]) -> RebookReservationArgs:
    return RebookReservationArgs.model_validate(raw_args)


@contextmanager
def atomic(db: Session) -> Iterator[None]:
    """Commit the enclosed work as one unit, rolling everything back on any failure."""
    try:
        yield
        db.commit()
    except DBAPIError as exc:
        db.rollback()
        logger.warning("Storage failure, unit of work rolled back: %s", exc.__class__.__name__)
        raise InfrastructureError("Temporary storage issue. Please try again.") from exc
    except Exception:
        db.rollback()
        raise


def create_reservation(
    db: Session,
    customer_id: str,
    restaurant_id: int,
    booking_date: date | str,
    slot_id: int,
    party_size: int,
    now: datetime,
) -> Reservation:
    _validate_party_size(party_size)
    if isinstance(booking_date, str):
        booking_date = parse_booking_date(booking_date)

    with atomic(db):
        restaurant = get_restaurant(db, restaurant_id)
        local_now = to_restaurant_local(now, restaurant.timezone)
        today = local_now.date()
        if not is_within_horizon(booking_date, today):
            raise DateOutOfRangeError(
                "Reservations can only be made between "
                f"{today.isoformat()} and {horizon_end(today).isoformat()}."
            )

        slot = _load_bookable_slot(db, restaurant.id, slot_id, local_now)
        if slot.slot_date != booking_date:
            raise BookingValidationError("The selected time slot is not on the requested date.")

        reservation = Reservation(
            customer_id=customer_id,
            restaurant_id=restaurant.id,
            reservation_time=datetime.combine(slot.slot_date, slot.start_time),
            party_size=party_size,
            status=STATUS_PENDING,
        )
        db.add(reservation)
        db.flush()
        claim_slot(db, slot, reservation.id)

    logger.info(
        "Reservation created reservation_id=%s slot_id=%s restaurant_id=%s",
        reservation.id,
        slot.id,
        restaurant.id,
    )
    return reservation


def rebook_reservation(
    db: Session,
    customer_id: str,
    reservation_id: int,
    new_slot_id: int,
    new_party_size: int,
    now: datetime,
) -> Reservation:
    """Cancel the customer's reservation and book ``new_slot_id`` in its place.

    The old reservation is kept as a cancelled record and the new one points back
    at it through ``rebooked_from_id``. All four writes commit together.
    """
    _validate_party_size(new_party_size)

    with atomic(db):
        old = find_customer_reservation(db, customer_id, reservation_id)
        if old.status == STATUS_CANCELLED:
            raise AlreadyCancelledError("Cancelled reservations cannot be edited.")

        restaurant = get_restaurant(db, old.restaurant_id)
        local_now = to_restaurant_local(now, restaurant.timezone)
        if old.reservation_time < local_now + timedelta(minutes=EDIT_GUARD_MINUTES):
            raise TooLateToEditError(
                "You cannot edit a reservation that is less than "
                f"{EDIT_GUARD_MINUTES} minutes away."
            )

        new_slot = _load_bookable_slot(db, restaurant.id, new_slot_id, local_now)

        cancel_and_release(db, old)
        replacement = Reservation(
            customer_id=old.customer_id,
            restaurant_id=old.restaurant_id,
            reservation_time=datetime.combine(new_slot.slot_date, new_slot.start_time),
            party_size=new_party_size,
            status=STATUS_PENDING,
            rebooked_from_id=old.id,
        )
        db.add(replacement)
        db.flush()
        claim_slot(db, new_slot, replacement.id)

    logger.info(
        "Reservation rebooked old_reservation_id=%s new_reservation_id=%s slot_id=%s",
        old.id,
        replacement.id,
        new_slot.id,
    )
    return replacement


def cancel_reservation(db: Session, customer_id: str, reservation_id: int) -> Reservation:
    with atomic(db):
        reservation = find_customer_reservation(db, customer_id, reservation_id)
        if reservation.status == STATUS_CANCELLED:
            raise AlreadyCancelledError("Reservation is already cancelled.")
        cancel_and_release(db, reservation)

    logger.info("Reservation cancelled by customer reservation_id=%s", reservation.id)
    return reservation


def find_customer_reservation(db: Session, customer_id: str, reservation_id: int) -> Reservation:
    reservation = db.get(Reservation, reservation_id)
    if reservation is None or reservation.customer_id != customer_id:
        raise NotFoundError("Reservation not found.")
    return reservation


def claim_slot(db: Session, slot: TimeSlot, reservation_id: int) -> None:
    # Conditional update: only one concurrent claim can match is_reserved = false.
    claimed = (
        db.query(TimeSlot)
        .filter(TimeSlot.id == slot.id)
        .filter(TimeSlot.is_reserved.is_(False))
        .update(
            {TimeSlot.is_reserved: True, TimeSlot.reservation_id: reservation_id},
            synchronize_session=False,
        )
    )
    db.expire(slot, ["is_reserved", "reservation_id"])
    if claimed != 1:
        logger.warning("Slot claim lost slot_id=%s reservation_id=%s", slot.id, reservation_id)
        raise SlotUnavailableError(SLOT_UNAVAILABLE_MESSAGE)


def release_slot(db: Session, reservation_id: int) -> TimeSlot | None:
    slot = (
        db.query(TimeSlot)
        .filter(TimeSlot.reservation_id == reservation_id)
        .one_or_none()
    )
    if slot is None:
        return None

    (
        db.query(TimeSlot)
        .filter(TimeSlot.id == slot.id)
        .filter(TimeSlot.reservation_id == reservation_id)
        .update(
            {TimeSlot.is_reserved: False, TimeSlot.reservation_id: None},
            synchronize_session=False,
        )
    )
    db.expire(slot, ["is_reserved", "reservation_id"])
    logger.info("Slot released slot_id=%s reservation_id=%s", slot.id, reservation_id)
    return slot


def cancel_and_release(db: Session, reservation: Reservation) -> None:
    cancelled = (
        db.query(Reservation)
        .filter(Reservation.id == reservation.id)
        .filter(Reservation.status != STATUS_CANCELLED)
        .update({Reservation.status: STATUS_CANCELLED}, synchronize_session=False)
    )
    db.expire(reservation, ["status"])
    if cancelled != 1:
        raise AlreadyCancelledError("Reservation is already cancelled.")
    release_slot(db, reservation.id)


def serialize_reservation(reservation: Reservation) -> dict[str, Any]:
    return {
        "reservation_id": reservation.id,
        "customer_id": reservation.customer_id,
        "restaurant_id": reservation.restaurant_id,
        "reservation_time": reservation.reservation_time.isoformat(),
        "party_size": reservation.party_size,
        "status": reservation.status,
        "rebooked_from_id": reservation.rebooked_from_id,
    }


def _load_bookable_slot(
    db: Session, restaurant_id: int, slot_id: int, local_now: datetime
) -> TimeSlot:
    slot = db.get(TimeSlot, slot_id)
    if (
        slot is None
        or slot.restaurant_id != restaurant_id
        or slot.is_reserved
        or not is_within_horizon(slot.slot_date, local_now.date())
        or not respects_lead_time(slot.slot_date, slot.start_time, local_now)
    ):
        raise SlotUnavailableError(SLOT_UNAVAILABLE_MESSAGE)
    return slot


def _validate_party_size(party_size: Any) -> None:
    if isinstance(party_size, bool) or not isinstance(party_size, int) or party_size <= 0:
        raise BookingValidationError("Number of people must be at least 1.")
