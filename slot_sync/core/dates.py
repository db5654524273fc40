"""Date parsing/formatting shared by the provider client, reconciliation and read API."""
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from slot_sync.core.errors import ValidationError

API_DATE_FORMAT = "%Y%m%d"


def parse_date(value: date | str | None) -> date:
    """
    Accept a date, YYYYMMDD or YYYY-MM-DD. Anything else (including 20250231) raises ValidationError.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError(f"Invalid date: {value!r}. Expected YYYY-MM-DD or YYYYMMDD.")
    raw = value.strip()
    # strptime alone would accept unpadded 2025-6-1
    if len(raw) == 10 and raw[4] == "-" and raw[7] == "-":
        fmt = "%Y-%m-%d"
    elif len(raw) == 8 and raw.isdigit():
        fmt = API_DATE_FORMAT
    else:
        raise ValidationError(f"Invalid date format: {value}. Expected YYYY-MM-DD or YYYYMMDD.")
    try:
        return datetime.strptime(raw, fmt).date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value}") from None


def format_api_date(day: date) -> str:
    """YYYYMMDD, the provider's and the read API's wire format."""
    # strftime %Y is not zero-padded for years < 1000 on every platform
    return f"{day.year:04d}{day.month:02d}{day.day:02d}"


def today_in(tz_name: str) -> date:
    """Calendar date now in tz_name; falls back to UTC for unknown zones."""
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        tz = ZoneInfo("UTC")
    return datetime.now(tz).date()


def date_window(start_offset: int, days: int, today: date) -> list[date]:
    """[today+start_offset, today+start_offset+days) in ascending order."""
    return [today + timedelta(days=start_offset + i) for i in range(days)]
