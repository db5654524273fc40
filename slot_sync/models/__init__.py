from slot_sync.models.availability import Availability
from slot_sync.models.pax_availability import PaxAvailability
from slot_sync.models.pax_type import PaxType
from slot_sync.models.product import Product
from slot_sync.models.time_slot import TimeSlot

__all__ = [
    "Availability",
    "PaxAvailability",
    "PaxType",
    "Product",
    "TimeSlot",
]
