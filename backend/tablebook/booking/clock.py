from __future__ import annotations

import calendar
import logging
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tablebook.booking.errors import BookingValidationError


BOOKING_HORIZON_MONTHS = 1
LEAD_TIME_MINUTES = 30

logger = logging.getLogger("tablebook.booking.clock")


def to_restaurant_local(now: datetime, restaurant_timezone: str) -> datetime:
    """Return ``now`` as naive wall time in the restaurant's timezone.

    Naive inputs are taken to already be restaurant-local.
    """
    if now.tzinfo is None or now.tzinfo.utcoffset(now) is None:
        return now
    try:
        tzinfo = ZoneInfo(restaurant_timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(
            "Unknown restaurant timezone '%s'; evaluating booking times in UTC",
            restaurant_timezone,
        )
        tzinfo = timezone.utc
    return now.astimezone(tzinfo).replace(tzinfo=None)


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def horizon_end(today: date) -> date:
    return add_months(today, BOOKING_HORIZON_MONTHS)


def is_within_horizon(target: date, today: date) -> bool:
    return today <= target <= horizon_end(today)


def earliest_same_day_start(local_now: datetime) -> datetime:
    return local_now + timedelta(minutes=LEAD_TIME_MINUTES)


def respects_lead_time(slot_date: date, slot_start: time, local_now: datetime) -> bool:
    if slot_date != local_now.date():
        return slot_date > local_now.date()
    return datetime.combine(slot_date, slot_start) >= earliest_same_day_start(local_now)


def iter_days(start: date, end: date):
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def parse_booking_date(value: str) -> date:
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError as exc:
        raise BookingValidationError("Invalid date format. Please use YYYY-MM-DD.") from exc
