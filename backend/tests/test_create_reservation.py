from datetime import date, datetime, time

import pytest
from sqlalchemy.exc import OperationalError

from tablebook.booking.errors import (
    BookingValidationError,
    DateOutOfRangeError,
    InfrastructureError,
    NotFoundError,
    SlotUnavailableError,
)
from tablebook.booking.transactions import create_reservation, serialize_reservation
from tablebook.db.models import Reservation, TimeSlot

from conftest import NOW, TODAY


def _book(db, restaurant, slot, customer_id="alice", party_size=4, booking_date=None):
    return create_reservation(
        db,
        customer_id=customer_id,
        restaurant_id=restaurant.id,
        booking_date=booking_date or slot.slot_date,
        slot_id=slot.id,
        party_size=party_size,
        now=NOW,
    )


def test_create_claims_slot_and_rejects_second_booking(db, make_restaurant, make_slot):
    bistro = make_restaurant(name="Bistro")
    slot = make_slot(bistro, date(2026, 10, 25), time(19, 0))

    reservation = _book(db, bistro, slot, customer_id="alice", party_size=4)

    assert reservation.status == "pending"
    assert reservation.party_size == 4
    assert reservation.reservation_time == datetime(2026, 10, 25, 19, 0)
    claimed = db.get(TimeSlot, slot.id)
    assert claimed.is_reserved is True
    assert claimed.reservation_id == reservation.id

    with pytest.raises(SlotUnavailableError):
        _book(db, bistro, slot, customer_id="bob", party_size=2)

    assert db.query(Reservation).count() == 1
    assert db.get(TimeSlot, slot.id).reservation_id == reservation.id


def test_create_accepts_iso_date_string(db, make_restaurant, make_slot):
    restaurant = make_restaurant()
    slot = make_slot(restaurant, date(2026, 10, 25), time(19, 0))

    reservation = _book(db, restaurant, slot, booking_date="2026-10-25")

    assert serialize_reservation(reservation) == {
        "reservation_id": reservation.id,
        "customer_id": "alice",
        "restaurant_id": restaurant.id,
        "reservation_time": "2026-10-25T19:00:00",
        "party_size": 4,
        "status": "pending",
        "rebooked_from_id": None,
    }


@pytest.mark.parametrize("party_size", [0, -3, True, "4"])
def test_invalid_party_size_writes_nothing(db, make_restaurant, make_slot, party_size):
    restaurant = make_restaurant()
    slot = make_slot(restaurant, date(2026, 10, 25), time(19, 0))

    with pytest.raises(BookingValidationError):
        _book(db, restaurant, slot, party_size=party_size)

    assert db.query(Reservation).count() == 0
    assert db.get(TimeSlot, slot.id).is_reserved is False


def test_booking_date_outside_horizon(db, make_restaurant, make_slot):
    restaurant = make_restaurant()
    slot = make_slot(restaurant, date(2026, 10, 25), time(19, 0))

    with pytest.raises(DateOutOfRangeError):
        _book(db, restaurant, slot, booking_date=date(2026, 12, 1))


def test_booking_date_must_match_slot_date(db, make_restaurant, make_slot):
    restaurant = make_restaurant()
    slot = make_slot(restaurant, date(2026, 10, 25), time(19, 0))

    with pytest.raises(BookingValidationError):
        _book(db, restaurant, slot, booking_date=date(2026, 10, 26))

    assert db.query(Reservation).count() == 0


def test_slot_from_another_restaurant_is_unavailable(db, make_restaurant, make_slot):
    bistro = make_restaurant(name="Bistro")
    trattoria = make_restaurant(name="Trattoria")
    slot = make_slot(trattoria, date(2026, 10, 25), time(19, 0))

    with pytest.raises(SlotUnavailableError):
        _book(db, bistro, slot)


def test_same_day_slot_inside_lead_time_is_unavailable(db, make_restaurant, make_slot):
    restaurant = make_restaurant()
    too_soon = make_slot(restaurant, TODAY, time(12, 15), minutes=15)
    in_time = make_slot(restaurant, TODAY, time(12, 30))

    with pytest.raises(SlotUnavailableError):
        _book(db, restaurant, too_soon)

    reservation = _book(db, restaurant, in_time)
    assert reservation.reservation_time == datetime(2026, 10, 19, 12, 30)


def test_unknown_slot_is_unavailable(db, make_restaurant):
    restaurant = make_restaurant()

    with pytest.raises(SlotUnavailableError):
        create_reservation(
            db,
            customer_id="alice",
            restaurant_id=restaurant.id,
            booking_date=date(2026, 10, 25),
            slot_id=404,
            party_size=2,
            now=NOW,
        )


def test_unknown_restaurant_is_not_found(db):
    with pytest.raises(NotFoundError):
        create_reservation(
            db,
            customer_id="alice",
            restaurant_id=404,
            booking_date=date(2026, 10, 25),
            slot_id=1,
            party_size=2,
            now=NOW,
        )


def test_storage_failure_rolls_back_and_surfaces_infrastructure_error(
    db, make_restaurant, make_slot, monkeypatch
):
    restaurant = make_restaurant()
    slot = make_slot(restaurant, date(2026, 10, 25), time(19, 0))

    def _broken_flush(*_args, **_kwargs):
        raise OperationalError("INSERT INTO reservations", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "flush", _broken_flush)

    with pytest.raises(InfrastructureError) as exc_info:
        _book(db, restaurant, slot)

    monkeypatch.undo()
    assert exc_info.value.status_code == 503
    assert db.query(Reservation).count() == 0
    assert db.get(TimeSlot, slot.id).is_reserved is False
