from datetime import time

from tablebook.db.models import Restaurant, StaffAssignment
from tablebook.db.session import SessionLocal


DEMO_STAFF_ID = "demo_staff_001"


def seed_demo_restaurant() -> None:
    session = SessionLocal()
    try:
        existing = session.query(Restaurant).filter(Restaurant.name == "Demo Bistro").first()
        if existing is not None:
            print(f"Demo restaurant already exists with id={existing.id}")
            return

        demo = Restaurant(
            name="Demo Bistro",
            address="1 Main Street",
            phone="+15555550100",
            timezone="America/New_York",
            opening_time=time(11, 0),
            closing_time=time(23, 0),
            slot_minutes=30,
        )
        session.add(demo)
        session.flush()
        session.add(StaffAssignment(staff_id=DEMO_STAFF_ID, restaurant_id=demo.id))
        session.commit()
        print(f"Created demo restaurant with id={demo.id} staffed by {DEMO_STAFF_ID}")
    finally:
        session.close()


if __name__ == "__main__":
    seed_demo_restaurant()
