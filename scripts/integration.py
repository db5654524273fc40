#!/usr/bin/env python3
"""
One-shot sync against the live provider: ensure the configured products exist, then fetch and
merge the next N days (today inclusive) for each product. Dates with an empty snapshot are
reported and left untouched; failures are reported and do not stop the run.

Usage: python scripts/integration.py [--days 7] [--product 14 --product 15]
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from slot_sync.config import settings
from slot_sync.core.dates import date_window, format_api_date, today_in
from slot_sync.core.errors import AppError
from slot_sync.db.session import SessionLocal
from slot_sync.services.inventory import InventoryClient
from slot_sync.services.reconciliation import ReconciliationEngine
from slot_sync.services.sync import ensure_products


def main():
    parser = argparse.ArgumentParser(description="Fetch and reconcile inventory for the next N days")
    parser.add_argument("--days", type=int, default=7, help="Number of days from today (default 7)")
    parser.add_argument("--product", type=int, action="append", help="Product id (repeatable); default PRODUCT_IDS")
    args = parser.parse_args()

    product_ids = args.product or settings.product_ids
    dates = date_window(0, args.days, today_in(settings.sync_timezone))
    print(f"Dates: {', '.join(format_api_date(d) for d in dates)}")

    db = SessionLocal()
    try:
        ensure_products(db, product_ids)
    finally:
        db.close()

    client = InventoryClient()
    engine = ReconciliationEngine()
    failures = 0
    for product_id in product_ids:
        print(f"Processing product {product_id}")
        for day in dates:
            label = format_api_date(day)
            try:
                snapshot = client.fetch(product_id, day)
                if not snapshot:
                    print(f"  {label}: no inventory available")
                    continue
                result = engine.merge(product_id, day, snapshot)
                print(
                    f"  {label}: saved {result.slot_count} slots "
                    f"(created={result.created} updated={result.updated} reparented={result.reparented})"
                )
            except AppError as e:
                failures += 1
                print(f"  {label}: ERROR {e.message}")
    print(f"Done. failures={failures}")
    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
