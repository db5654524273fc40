from slot_sync.db.base import Base
from slot_sync.db.session import get_db, engine, SessionLocal
from slot_sync.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
