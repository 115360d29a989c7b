from datetime import date, time

import pytest

from tablebook.booking.availability import list_available_slots, serialize_slot
from tablebook.booking.errors import BookingValidationError, DateOutOfRangeError, NotFoundError

from conftest import NOW, TODAY


def test_same_day_slots_respect_lead_time(db, make_restaurant, make_slot):
    restaurant = make_restaurant()
    for start in (time(11, 30), time(12, 0), time(12, 30), time(13, 0)):
        make_slot(restaurant, TODAY, start)

    slots = list_available_slots(db, restaurant.id, TODAY, now=NOW)

    assert [slot.start_time for slot in slots] == [time(12, 30), time(13, 0)]


def test_reserved_slots_are_hidden(db, make_restaurant, make_slot):
    restaurant = make_restaurant()
    make_slot(restaurant, date(2026, 10, 25), time(19, 0), is_reserved=True)
    free = make_slot(restaurant, date(2026, 10, 25), time(19, 30))

    slots = list_available_slots(db, restaurant.id, "2026-10-25", now=NOW)

    assert [slot.id for slot in slots] == [free.id]


def test_slots_are_ordered_by_start_time(db, make_restaurant, make_slot):
    restaurant = make_restaurant()
    make_slot(restaurant, date(2026, 10, 25), time(20, 0))
    make_slot(restaurant, date(2026, 10, 25), time(18, 0))
    make_slot(restaurant, date(2026, 10, 25), time(19, 0))

    slots = list_available_slots(db, restaurant.id, date(2026, 10, 25), now=NOW)

    assert [slot.start_time for slot in slots] == [time(18, 0), time(19, 0), time(20, 0)]


def test_other_restaurants_slots_are_not_listed(db, make_restaurant, make_slot):
    bistro = make_restaurant(name="Bistro")
    trattoria = make_restaurant(name="Trattoria")
    make_slot(trattoria, date(2026, 10, 25), time(19, 0))

    assert list_available_slots(db, bistro.id, date(2026, 10, 25), now=NOW) == []


def test_horizon_end_is_bookable(db, make_restaurant, make_slot):
    restaurant = make_restaurant()
    make_slot(restaurant, date(2026, 11, 19), time(19, 0))

    slots = list_available_slots(db, restaurant.id, date(2026, 11, 19), now=NOW)

    assert len(slots) == 1


@pytest.mark.parametrize("target", [date(2026, 10, 18), date(2026, 11, 20)])
def test_dates_outside_horizon_are_rejected(db, make_restaurant, target):
    restaurant = make_restaurant()

    with pytest.raises(DateOutOfRangeError) as exc_info:
        list_available_slots(db, restaurant.id, target, now=NOW)

    assert exc_info.value.error_code == "DATE_OUT_OF_RANGE"
    assert "2026-11-19" in exc_info.value.human_message


def test_malformed_date_is_a_validation_error(db, make_restaurant):
    restaurant = make_restaurant()

    with pytest.raises(BookingValidationError):
        list_available_slots(db, restaurant.id, "25/10/2026", now=NOW)


def test_unknown_restaurant_is_not_found(db):
    with pytest.raises(NotFoundError):
        list_available_slots(db, 999, TODAY, now=NOW)


def test_serialize_slot(db, make_restaurant, make_slot):
    restaurant = make_restaurant()
    slot = make_slot(restaurant, date(2026, 10, 25), time(19, 0))

    assert serialize_slot(slot) == {
        "slot_id": slot.id,
        "restaurant_id": restaurant.id,
        "date": "2026-10-25",
        "start_time": "19:00",
        "end_time": "19:30",
    }
