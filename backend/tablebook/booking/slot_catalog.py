from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tablebook.booking.clock import horizon_end, iter_days, to_restaurant_local
from tablebook.db.models import Restaurant, TimeSlot


logger = logging.getLogger("tablebook.booking.slot_catalog")


def generate_slots(db: Session, now: datetime) -> int:
    """Materialize missing time slots for every restaurant over the booking horizon.

    Existing slots are never touched, so repeated or overlapping runs converge on
    the same slot set. Returns the number of slots created.
    """
    created = 0
    restaurants = db.query(Restaurant).order_by(Restaurant.id).all()
    for restaurant in restaurants:
        created += _generate_for_restaurant(db, restaurant, now)
    logger.info("Slot generation finished created=%s restaurants=%s", created, len(restaurants))
    return created


def iter_slot_bounds(opening: time, closing: time, slot_minutes: int):
    if slot_minutes <= 0:
        return
    step = timedelta(minutes=slot_minutes)
    anchor = date.min
    cursor = datetime.combine(anchor, opening)
    closing_dt = datetime.combine(anchor, closing)
    while cursor + step <= closing_dt:
        yield cursor.time(), (cursor + step).time()
        cursor += step


def _generate_for_restaurant(db: Session, restaurant: Restaurant, now: datetime) -> int:
    restaurant_id = restaurant.id
    today = to_restaurant_local(now, restaurant.timezone).date()
    last_day = horizon_end(today)
    bounds = list(
        iter_slot_bounds(restaurant.opening_time, restaurant.closing_time, restaurant.slot_minutes)
    )

    for attempt in range(2):
        existing = _existing_slot_keys(db, restaurant_id, today, last_day)
        pending = [
            TimeSlot(
                restaurant_id=restaurant_id,
                slot_date=day,
                start_time=start,
                end_time=end,
                is_reserved=False,
                reservation_id=None,
            )
            for day in iter_days(today, last_day)
            for start, end in bounds
            if (day, start) not in existing
        ]
        if not pending:
            return 0

        db.add_all(pending)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent generator inserted some of the same keys first.
            db.rollback()
            if attempt == 1:
                raise
            logger.warning(
                "Slot generation conflict for restaurant_id=%s; re-reading existing slots",
                restaurant_id,
            )
            continue

        logger.info(
            "Generated slots restaurant_id=%s created=%s from=%s to=%s",
            restaurant_id,
            len(pending),
            today.isoformat(),
            last_day.isoformat(),
        )
        return len(pending)
    return 0


def _existing_slot_keys(
    db: Session, restaurant_id: int, first_day: date, last_day: date
) -> set[tuple[date, time]]:
    rows = (
        db.query(TimeSlot.slot_date, TimeSlot.start_time)
        .filter(TimeSlot.restaurant_id == restaurant_id)
        .filter(TimeSlot.slot_date >= first_day)
        .filter(TimeSlot.slot_date <= last_day)
        .all()
    )
    return {(slot_date, start_time) for slot_date, start_time in rows}
