"""
Inventory provider package: client, config and typed payloads.
"""
from slot_sync.services.inventory.client import InventoryClient
from slot_sync.services.inventory.config import InventoryConfig
from slot_sync.services.inventory.types import PaxRecord, Price, SlotRecord

__all__ = [
    "InventoryClient",
    "InventoryConfig",
    "PaxRecord",
    "Price",
    "SlotRecord",
]
