"""
Typed definitions for provider inventory responses.

GET /api/v1/inventory/{productId}?date=YYYYMMDD returns a JSON array of slots; each slot
carries its pax availability with a composite price. Payloads are validated on ingress so
loosely-typed data never reaches storage: a record that does not match is a FetchError.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _ProviderModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Price(_ProviderModel):
    """Composite price as sent by the provider; stored verbatim (camelCase) in pax_availabilities.price."""
    discount: float = 0
    final_price: float = Field(alias="finalPrice")
    original_price: float = Field(alias="originalPrice")
    currency_code: str = Field(alias="currencyCode")

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


class PaxRecord(_ProviderModel):
    """One pax type (adult, child, ...) under a slot."""
    type: str = Field(min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None
    price: Price
    min: Optional[int] = None
    max: Optional[int] = None
    remaining: int = 0
    is_primary: bool = Field(default=False, alias="isPrimary")


class SlotRecord(_ProviderModel):
    """One bookable time window. provider_slot_id is the reconciliation key."""
    provider_slot_id: str = Field(alias="providerSlotId", min_length=1)
    start_date: Optional[str] = Field(default=None, alias="startDate")
    start_time: str = Field(alias="startTime")
    end_time: Optional[str] = Field(default=None, alias="endTime")
    variant_id: Optional[int] = Field(default=None, alias="variantId")
    currency_code: Optional[str] = Field(default=None, alias="currencyCode")
    remaining: int = 0
    pax_availability: list[PaxRecord] = Field(default_factory=list, alias="paxAvailability")


InventoryResponse = TypeAdapter(list[SlotRecord])
