import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime, time, timedelta, timezone

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from tablebook.db.base import Base
from tablebook.db.models import Restaurant, TimeSlot


# 12:00 wall time in America/New_York (EDT, UTC-4).
NOW = datetime(2026, 10, 19, 16, 0, tzinfo=timezone.utc)
TODAY = date(2026, 10, 19)


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'tablebook.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    # SQLite only honours ON DELETE CASCADE with foreign keys switched on.
    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_restaurant(db):
    def _make(**overrides):
        fields = {
            "name": "Bistro",
            "timezone": "America/New_York",
            "opening_time": time(11, 0),
            "closing_time": time(23, 0),
            "slot_minutes": 30,
        }
        fields.update(overrides)
        restaurant = Restaurant(**fields)
        db.add(restaurant)
        db.commit()
        return restaurant

    return _make


@pytest.fixture()
def make_slot(db):
    def _make(restaurant, slot_date, start, minutes=30, is_reserved=False):
        end = (datetime.combine(slot_date, start) + timedelta(minutes=minutes)).time()
        slot = TimeSlot(
            restaurant_id=restaurant.id,
            slot_date=slot_date,
            start_time=start,
            end_time=end,
            is_reserved=is_reserved,
        )
        db.add(slot)
        db.commit()
        return slot

    return _make
