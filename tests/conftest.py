"""
Pytest fixtures: in-memory SQLite database per test and provider payload builders.
"""
import os

# Settings are read at import time; keep tests off Postgres and the real scheduler.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")
os.environ.setdefault("API_KEY", "test-key")

from typing import Any, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import slot_sync.models  # noqa: F401  (registers tables on Base.metadata)
from slot_sync.db.base import Base


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh in-memory database; StaticPool so every session sees the same connection."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


def make_pax(
    type: str = "adult",
    *,
    remaining: int = 5,
    is_primary: bool | None = True,
    final_price: float = 50,
    original_price: float = 60,
    currency: str = "USD",
    name: str | None = "Adult",
    description: str | None = "Ages 18+",
    min: int | None = 1,
    max: int | None = 10,
) -> dict[str, Any]:
    pax: dict[str, Any] = {
        "type": type,
        "name": name,
        "description": description,
        "price": {
            "discount": original_price - final_price,
            "finalPrice": final_price,
            "originalPrice": original_price,
            "currencyCode": currency,
        },
        "min": min,
        "max": max,
        "remaining": remaining,
    }
    if is_primary is not None:
        pax["isPrimary"] = is_primary
    return pax


def make_slot(
    provider_slot_id: str,
    *,
    start_time: str = "10:00",
    end_time: str = "11:00",
    remaining: int = 5,
    currency: str = "USD",
    variant_id: int = 1,
    pax: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "providerSlotId": provider_slot_id,
        "startTime": start_time,
        "endTime": end_time,
        "variantId": variant_id,
        "currencyCode": currency,
        "remaining": remaining,
        "paxAvailability": pax if pax is not None else [make_pax(remaining=remaining)],
    }
