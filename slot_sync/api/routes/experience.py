"""
Experience read API: slots for a date and priced dates, served from reconciled inventory.

Mounted under /api/v1/experience.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from slot_sync.core.errors import AppError, ValidationError, error_to_http
from slot_sync.db.session import get_db
from slot_sync.services.inventory_service import get_dates, get_slots

router = APIRouter()


def _product_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"Invalid product id: {raw}") from None


@router.get("/{product_id}/slots", response_model=dict)
def list_slots(product_id: str, date: str | None = None, db: Session = Depends(get_db)):
    """Slots for one date (YYYYMMDD or YYYY-MM-DD); startDate echoes the input format."""
    try:
        if not date:
            raise ValidationError("Date parameter is required")
        return get_slots(db, _product_id(product_id), date)
    except AppError as e:
        raise error_to_http(e) from e


@router.get("/{product_id}/dates", response_model=dict)
def list_dates(product_id: str, db: Session = Depends(get_db)):
    """Dates in the next 60 days that have at least one slot, with the headline price."""
    try:
        return get_dates(db, _product_id(product_id))
    except AppError as e:
        raise error_to_http(e) from e
