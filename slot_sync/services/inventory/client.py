"""Provider inventory client: rate-limited fetch of one (product, date) snapshot, validated on ingress."""
import logging
from datetime import date

import httpx
import pydantic

from slot_sync.core.constants import INVENTORY_PATH
from slot_sync.core.dates import format_api_date, parse_date
from slot_sync.core.errors import FetchError
from slot_sync.services.inventory.config import InventoryConfig
from slot_sync.services.inventory.types import InventoryResponse, SlotRecord
from slot_sync.services.rate_limiter import RateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)


class InventoryClient:
    """GET {base_url}/api/v1/inventory/{product_id}?date=YYYYMMDD. No retries; the caller decides."""

    def __init__(
        self,
        config: InventoryConfig | None = None,
        rate_limiter: RateLimiter | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config or InventoryConfig()
        self._rate_limiter = rate_limiter or get_rate_limiter()
        self._transport = transport
        if not self._config.is_configured():
            logger.warning("API_KEY not configured; provider requests will be rejected")

    def _get(self, path: str, params: dict[str, str]) -> httpx.Response:
        url = f"{self._config.base_url}{path}"
        logger.debug("Fetching inventory: %s %s", url, params)
        with httpx.Client(timeout=self._config.timeout, transport=self._transport) as c:
            return c.get(url, params=params, headers=self._config.headers())

    def fetch(self, product_id: int, day: date | str) -> list[SlotRecord]:
        """
        Fetch the snapshot for one (product, date). Always waits on the rate limiter first.
        Raises ValidationError for a bad date (before any call) and FetchError for network
        failure, non-2xx status, or a payload that is not a list of valid slot records.
        """
        date_str = format_api_date(parse_date(day))
        self._rate_limiter.acquire()

        def fail(msg: str, upstream_status: int | None = None) -> FetchError:
            return FetchError(msg, product_id=product_id, day=date_str, upstream_status=upstream_status)

        try:
            r = self._get(INVENTORY_PATH.format(product_id=product_id), {"date": date_str})
        except httpx.HTTPError as e:
            raise fail(f"Inventory request failed for product {product_id} on {date_str}: {e}") from e
        if not r.is_success:
            detail = r.text[:500] if r.text else ""
            raise fail(
                f"Inventory API error {r.status_code} for product {product_id} on {date_str}: {detail}",
                upstream_status=r.status_code,
            )
        try:
            raw = r.json()
        except ValueError as e:
            raise fail(f"Inventory response is not JSON for product {product_id} on {date_str}") from e
        if not isinstance(raw, list):
            raise fail(
                f"Inventory response for product {product_id} on {date_str} is {type(raw).__name__}, expected list"
            )
        try:
            slots = InventoryResponse.validate_python(raw)
        except pydantic.ValidationError as e:
            raise fail(
                f"Malformed inventory payload for product {product_id} on {date_str}: "
                f"{e.error_count()} invalid field(s)"
            ) from e
        logger.debug("Received %s slots for product %s on %s", len(slots), product_id, date_str)
        return slots
