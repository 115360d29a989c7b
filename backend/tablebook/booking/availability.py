from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from tablebook.booking.clock import (
    horizon_end,
    is_within_horizon,
    parse_booking_date,
    respects_lead_time,
    to_restaurant_local,
)
from tablebook.booking.errors import DateOutOfRangeError, NotFoundError
from tablebook.db.models import Restaurant, TimeSlot


def get_restaurant(db: Session, restaurant_id: int) -> Restaurant:
    restaurant = db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found.")
    return restaurant


def list_available_slots(
    db: Session,
    restaurant_id: int,
    target_date: date | str,
    now: datetime,
) -> list[TimeSlot]:
    """Return the bookable slots of one restaurant on ``target_date``, earliest first.

    Bookable means inside the horizon, not reserved, and, for today, starting at
    least the lead-time buffer after ``now``. Never writes.
    """
    restaurant = get_restaurant(db, restaurant_id)
    if isinstance(target_date, str):
        target_date = parse_booking_date(target_date)

    local_now = to_restaurant_local(now, restaurant.timezone)
    today = local_now.date()
    if not is_within_horizon(target_date, today):
        raise DateOutOfRangeError(
            "Reservations can only be made between "
            f"{today.isoformat()} and {horizon_end(today).isoformat()}."
        )

    candidates = (
        db.query(TimeSlot)
        .filter(TimeSlot.restaurant_id == restaurant.id)
        .filter(TimeSlot.slot_date == target_date)
        .filter(TimeSlot.is_reserved.is_(False))
        .order_by(TimeSlot.slot_date, TimeSlot.start_time)
        .all()
    )
    return [
        slot
        for slot in candidates
        if respects_lead_time(slot.slot_date, slot.start_time, local_now)
    ]


def serialize_slot(slot: TimeSlot) -> dict[str, Any]:
    return {
        "slot_id": slot.id,
        "restaurant_id": slot.restaurant_id,
        "date": slot.slot_date.isoformat(),
        "start_time": slot.start_time.strftime("%H:%M"),
        "end_time": slot.end_time.strftime("%H:%M"),
    }
