"""Per-pax-type price and capacity for one TimeSlot. Owned by the slot: deleted and recreated on every reconcile."""
from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer

from slot_sync.db.base import Base


class PaxAvailability(Base):
    __tablename__ = "pax_availabilities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False, index=True)
    pax_type_id = Column(Integer, ForeignKey("pax_types.id"), nullable=False, index=True)
    # {"discount", "finalPrice", "originalPrice", "currencyCode"} as sent by the provider
    price = Column(JSON, nullable=False)
    min = Column(Integer, nullable=True)
    max = Column(Integer, nullable=True)
    remaining = Column(Integer, nullable=False, default=0)
    is_primary = Column(Boolean, nullable=False, default=False)
