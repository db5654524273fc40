"""Provider API config. Credentials from settings (API_KEY) or InventoryConfig args."""
from slot_sync.config import settings


class InventoryConfig:
    """API key, base URL and timeout for the inventory provider."""

    __slots__ = ("api_key", "base_url", "timeout")

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = (api_key if api_key is not None else settings.api_key).strip()
        self.base_url = (base_url or settings.inventory_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_seconds

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def headers(self) -> dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "Accept": "application/json",
        }
