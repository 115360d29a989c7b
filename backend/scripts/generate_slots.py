from datetime import datetime, timezone

from tablebook.booking.slot_catalog import generate_slots
from tablebook.db.session import SessionLocal


def run_slot_generation() -> None:
    session = SessionLocal()
    try:
        created = generate_slots(session, now=datetime.now(timezone.utc))
        print(f"Created {created} time slots")
    finally:
        session.close()


if __name__ == "__main__":
    run_slot_generation()
