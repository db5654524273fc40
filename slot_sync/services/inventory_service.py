"""
Read side: slots for one (product, date) and priced dates for a product, from whatever was last
reconciled. Never calls the provider, so a provider outage only affects freshness.
"""
import logging
from datetime import date, timedelta
from typing import Any

from sqlalchemy.orm import Session

from slot_sync.config import settings
from slot_sync.core.constants import DATES_HORIZON_DAYS
from slot_sync.core.dates import format_api_date, parse_date, today_in
from slot_sync.core.errors import NotFoundError
from slot_sync.models.availability import Availability
from slot_sync.models.pax_availability import PaxAvailability
from slot_sync.models.pax_type import PaxType
from slot_sync.models.product import Product
from slot_sync.models.time_slot import TimeSlot

logger = logging.getLogger(__name__)


def _output_price(price: dict[str, Any] | None, fallback_currency: str | None = None) -> dict[str, Any]:
    price = price or {}
    return {
        "finalPrice": price.get("finalPrice", 0),
        "originalPrice": price.get("originalPrice", 0),
        "currencyCode": price.get("currencyCode", fallback_currency),
    }


def _zero_price(currency_code: str | None) -> dict[str, Any]:
    return {"finalPrice": 0, "originalPrice": 0, "currencyCode": currency_code}


def _require_product(db: Session, product_id: int) -> None:
    if db.get(Product, product_id) is None:
        raise NotFoundError(f"Product with ID {product_id} not found")


def _pax_output(pax: PaxAvailability, pax_type: PaxType) -> dict[str, Any]:
    out: dict[str, Any] = {"type": pax_type.type}
    # Falsy optional fields are omitted, not sent as null/0
    if pax_type.name:
        out["name"] = pax_type.name
    if pax_type.description:
        out["description"] = pax_type.description
    out["price"] = _output_price(pax.price)
    if pax.min:
        out["min"] = pax.min
    if pax.max:
        out["max"] = pax.max
    out["remaining"] = pax.remaining
    return out


def get_slots(db: Session, product_id: int, date_str: str) -> dict[str, list[dict[str, Any]]]:
    """
    Slots for one product and date. startDate echoes date_str as given (YYYYMMDD or YYYY-MM-DD).
    Slot price = primary pax price, else first pax, else zero with the slot's currency.
    """
    _require_product(db, product_id)
    day = parse_date(date_str)
    availability = (
        db.query(Availability)
        .filter(Availability.product_id == product_id, Availability.date == day)
        .first()
    )
    if availability is None:
        return {"slots": []}
    slots = (
        db.query(TimeSlot)
        .filter(TimeSlot.availability_id == availability.id)
        .order_by(TimeSlot.start_time, TimeSlot.id)
        .all()
    )
    if not slots:
        return {"slots": []}

    pax_by_slot: dict[int, list[tuple[PaxAvailability, PaxType]]] = {s.id: [] for s in slots}
    rows = (
        db.query(PaxAvailability, PaxType)
        .join(PaxType, PaxType.id == PaxAvailability.pax_type_id)
        .filter(PaxAvailability.time_slot_id.in_(list(pax_by_slot)))
        .order_by(PaxAvailability.id)
        .all()
    )
    for pax, pax_type in rows:
        pax_by_slot[pax.time_slot_id].append((pax, pax_type))

    out = []
    for slot in slots:
        paxes = pax_by_slot[slot.id]
        primary = next((p for p, _t in paxes if p.is_primary), None) or (paxes[0][0] if paxes else None)
        price = _output_price(primary.price) if primary else _zero_price(slot.currency_code)
        out.append(
            {
                "startTime": slot.start_time,
                "startDate": date_str,
                "price": price,
                "remaining": slot.remaining,
                "paxAvailability": [_pax_output(p, t) for p, t in paxes],
            }
        )
    return {"slots": out}


def get_dates(db: Session, product_id: int, today: date | None = None) -> dict[str, list[dict[str, Any]]]:
    """
    Dates in [today, today + 60d) with at least one slot, ascending. Price comes from the
    earliest slot's primary pax, else zero with that slot's currency.
    """
    _require_product(db, product_id)
    today = today or today_in(settings.sync_timezone)
    end = today + timedelta(days=DATES_HORIZON_DAYS)
    availabilities = (
        db.query(Availability)
        .filter(
            Availability.product_id == product_id,
            Availability.date >= today,
            Availability.date < end,
        )
        .order_by(Availability.date)
        .all()
    )
    dates = []
    for avail in availabilities:
        slot = (
            db.query(TimeSlot)
            .filter(TimeSlot.availability_id == avail.id)
            .order_by(TimeSlot.start_time, TimeSlot.id)
            .first()
        )
        if slot is None:
            continue
        primary = (
            db.query(PaxAvailability)
            .filter(PaxAvailability.time_slot_id == slot.id, PaxAvailability.is_primary.is_(True))
            .order_by(PaxAvailability.id)
            .first()
        )
        price = _output_price(primary.price) if primary else _zero_price(slot.currency_code)
        dates.append({"date": format_api_date(avail.date), "price": price})
    return {"dates": dates}
