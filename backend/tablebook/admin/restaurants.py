from __future__ import annotations

from datetime import time
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tablebook.db.models import Restaurant, StaffAssignment


class CreateRestaurantArgs(BaseModel):
    name: str = Field(min_length=1)
    address: str | None = None
    phone: str | None = None
    timezone: str = "America/New_York"
    opening_time: time = time(11, 0)
    closing_time: time = time(23, 0)
    slot_minutes: int = Field(default=30, gt=0, le=240)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return _validate_timezone(value)

    @model_validator(mode="after")
    def validate_opening_window(self) -> "CreateRestaurantArgs":
        if self.opening_time >= self.closing_time:
            raise ValueError("opening_time must be before closing_time.")
        return self


class UpdateRestaurantArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    address: str | None = None
    phone: str | None = None
    timezone: str | None = None
    opening_time: time | None = None
    closing_time: time | None = None
    slot_minutes: int | None = Field(default=None, gt=0, le=240)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _validate_timezone(value)


class CreateStaffAssignmentArgs(BaseModel):
    staff_id: str = Field(min_length=1)
    restaurant_id: int


def create_restaurant(db: Session, args: CreateRestaurantArgs) -> Restaurant:
    restaurant = Restaurant(**args.model_dump())
    db.add(restaurant)
    db.commit()
    return restaurant


def list_restaurants(db: Session) -> list[Restaurant]:
    return db.query(Restaurant).order_by(Restaurant.id).all()


def update_restaurant(
    db: Session, restaurant_id: int, args: UpdateRestaurantArgs
) -> Restaurant | None:
    restaurant = db.get(Restaurant, restaurant_id)
    if restaurant is None:
        return None

    patch = args.model_dump(exclude_unset=True)
    opening = patch.get("opening_time", restaurant.opening_time)
    closing = patch.get("closing_time", restaurant.closing_time)
    if opening >= closing:
        raise ValueError("opening_time must be before closing_time.")

    # Existing slots keep their bounds; the new window applies to future generation runs.
    for field, value in patch.items():
        setattr(restaurant, field, value)
    db.commit()
    return restaurant


def delete_restaurant(db: Session, restaurant_id: int) -> bool:
    restaurant = db.get(Restaurant, restaurant_id)
    if restaurant is None:
        return False
    db.delete(restaurant)
    db.commit()
    return True


def assign_staff(db: Session, args: CreateStaffAssignmentArgs) -> StaffAssignment:
    if db.get(Restaurant, args.restaurant_id) is None:
        raise LookupError("Restaurant not found.")

    existing = _find_assignment(db, staff_id=args.staff_id, restaurant_id=args.restaurant_id)
    if existing is not None:
        return existing

    assignment = StaffAssignment(staff_id=args.staff_id, restaurant_id=args.restaurant_id)
    db.add(assignment)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        replay = _find_assignment(db, staff_id=args.staff_id, restaurant_id=args.restaurant_id)
        if replay is not None:
            return replay
        raise
    return assignment


def serialize_restaurant(restaurant: Restaurant) -> dict[str, Any]:
    return {
        "id": restaurant.id,
        "name": restaurant.name,
        "address": restaurant.address,
        "phone": restaurant.phone,
        "timezone": restaurant.timezone,
        "opening_time": restaurant.opening_time.strftime("%H:%M"),
        "closing_time": restaurant.closing_time.strftime("%H:%M"),
        "slot_minutes": restaurant.slot_minutes,
        "created_at": restaurant.created_at.isoformat() if restaurant.created_at else None,
    }


def serialize_assignment(assignment: StaffAssignment) -> dict[str, Any]:
    return {
        "id": assignment.id,
        "staff_id": assignment.staff_id,
        "restaurant_id": assignment.restaurant_id,
    }


def _find_assignment(db: Session, staff_id: str, restaurant_id: int) -> StaffAssignment | None:
    return (
        db.query(StaffAssignment)
        .filter(StaffAssignment.staff_id == staff_id)
        .filter(StaffAssignment.restaurant_id == restaurant_id)
        .first()
    )


def _validate_timezone(value: str) -> str:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone '{value}'.") from exc
    return value
