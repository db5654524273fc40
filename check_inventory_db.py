#!/usr/bin/env python3
"""One-off script to check what the sync has written: row counts and the latest availabilities."""
import sys
from pathlib import Path

# ensure project root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from sqlalchemy import func

from slot_sync.core.dates import format_api_date
from slot_sync.db.session import SessionLocal
from slot_sync.models import Availability, PaxAvailability, PaxType, Product, TimeSlot


def main():
    db = SessionLocal()
    try:
        print("=== counts ===")
        for model in (Product, Availability, TimeSlot, PaxType, PaxAvailability):
            print(f"  {model.__tablename__}: {db.query(model).count()}")

        rows = (
            db.query(Availability.product_id, Availability.date, func.count(TimeSlot.id))
            .outerjoin(TimeSlot, TimeSlot.availability_id == Availability.id)
            .group_by(Availability.id, Availability.product_id, Availability.date)
            .order_by(Availability.date.desc())
            .limit(15)
            .all()
        )
        print("\n=== latest availabilities ===")
        for product_id, day, slot_count in rows:
            print(f"  product={product_id} date={format_api_date(day)} slots={slot_count}")

        dupes = (
            db.query(TimeSlot.provider_slot_id, func.count(TimeSlot.id))
            .group_by(TimeSlot.provider_slot_id)
            .having(func.count(TimeSlot.id) > 1)
            .all()
        )
        print(f"\nDuplicate provider_slot_ids: {len(dupes)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
