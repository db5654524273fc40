"""Product we sync inventory for. Id is the provider's product id; rows are never mutated or deleted here."""
from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.sql import func

from slot_sync.db.base import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
