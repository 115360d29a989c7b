from tablebook.db.base import Base
from tablebook.db.models import (
    Reservation,
    Restaurant,
    StaffAssignment,
    TimeSlot,
)

__all__ = [
    "Base",
    "Reservation",
    "Restaurant",
    "StaffAssignment",
    "TimeSlot",
]
