"""
Bookable time window under one Availability. provider_slot_id is unique system-wide:
a later snapshot for another date re-parents the row (availability_id changes) instead of duplicating it.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.sql import func

from slot_sync.db.base import Base


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    availability_id = Column(Integer, ForeignKey("availabilities.id"), nullable=False, index=True)
    provider_slot_id = Column(String(128), nullable=False, unique=True, index=True)
    start_time = Column(String(16), nullable=False)  # e.g. "10:00"
    end_time = Column(String(16), nullable=True)
    variant_id = Column(Integer, nullable=True)
    currency_code = Column(String(8), nullable=True)
    remaining = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
