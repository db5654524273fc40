"""Global pax type lookup (adult, child, ...). First writer wins on name/description; never backfilled."""
from sqlalchemy import Column, Integer, String, Text

from slot_sync.db.base import Base


class PaxType(Base):
    __tablename__ = "pax_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String(256), nullable=True)
    description = Column(Text, nullable=True)
