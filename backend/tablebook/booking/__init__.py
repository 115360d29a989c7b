from tablebook.booking.assignments import (
    AccessPolicy,
    AdminAccess,
    AssignmentAccess,
    Identity,
    resolve_access,
)
from tablebook.booking.availability import list_available_slots, serialize_slot
from tablebook.booking.slot_catalog import generate_slots
from tablebook.booking.transactions import (
    cancel_reservation,
    create_reservation,
    parse_create_reservation_args,
    parse_rebook_reservation_args,
    rebook_reservation,
    serialize_reservation,
)
from tablebook.booking.workflow import (
    confirm_reservation,
    list_customer_reservations,
    list_staff_reservations,
    staff_cancel_reservation,
)

__all__ = [
    "AccessPolicy",
    "AdminAccess",
    "AssignmentAccess",
    "Identity",
    "resolve_access",
    "list_available_slots",
    "serialize_slot",
    "generate_slots",
    "cancel_reservation",
    "create_reservation",
    "parse_create_reservation_args",
    "parse_rebook_reservation_args",
    "rebook_reservation",
    "serialize_reservation",
    "confirm_reservation",
    "list_customer_reservations",
    "list_staff_reservations",
    "staff_cancel_reservation",
]
