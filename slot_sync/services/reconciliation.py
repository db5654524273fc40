"""
Reconciliation: merge one (product, date) snapshot into availabilities / time_slots / pax rows.

- Product and Availability are resolved with conditional inserts (never duplicated, never deleted).
- provider_slot_id is the identity key system-wide. Existing rows are looked up before the purge,
  so a slot re-delivered on the same date keeps its surrogate id, and a slot last seen under
  another date is re-parented to this one (never duplicated).
- Slots under this availability that are absent from the snapshot are purged with their pax rows.
  An empty snapshot therefore empties the date but keeps the Availability row.
- Pax rows are always replaced; pax types are first-writer-wins on name/description.
- One transaction per merge; merges for the same (product, date) are serialized in-process so
  overlapping cadences can never interleave one run's purge with another's creates.
"""
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable, Iterator

import pydantic
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from slot_sync.core.dates import format_api_date, parse_date
from slot_sync.core.errors import MergeError, RaceConflict, ValidationError
from slot_sync.db.session import SessionLocal
from slot_sync.db.upsert import insert_ignore_conflict
from slot_sync.models.availability import Availability
from slot_sync.models.pax_availability import PaxAvailability
from slot_sync.models.pax_type import PaxType
from slot_sync.models.product import Product
from slot_sync.models.time_slot import TimeSlot
from slot_sync.services.inventory.types import PaxRecord, SlotRecord

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    product_id: int
    day: date
    availability_id: int | None = None
    created: int = 0
    updated: int = 0
    reparented: int = 0
    deleted: int = 0
    pax_written: int = 0

    @property
    def slot_count(self) -> int:
        return self.created + self.updated + self.reparented


# (product_id, date) -> (lock, number of merges holding or waiting on it). An entry exists only
# while some merge of that key is in flight. The registry itself is guarded by _locks_guard.
_merge_locks: dict[tuple[int, date], tuple[threading.Lock, int]] = {}
_locks_guard = threading.Lock()


@contextmanager
def merge_lock(product_id: int, day: date) -> Iterator[None]:
    """Hold the exclusive lock for (product_id, day) for the duration of the block."""
    key = (product_id, day)
    with _locks_guard:
        lock, users = _merge_locks.get(key, (None, 0))
        if lock is None:
            lock = threading.Lock()
        _merge_locks[key] = (lock, users + 1)
    try:
        with lock:
            yield
    finally:
        with _locks_guard:
            remaining = _merge_locks[key][1] - 1
            if remaining:
                _merge_locks[key] = (lock, remaining)
            else:
                del _merge_locks[key]


def coerce_snapshot(snapshot: Iterable[SlotRecord | dict[str, Any]]) -> list[SlotRecord]:
    """Accept validated SlotRecords or raw provider dicts; raw dicts that do not validate raise ValidationError."""
    out: list[SlotRecord] = []
    for record in snapshot:
        if isinstance(record, SlotRecord):
            out.append(record)
            continue
        try:
            out.append(SlotRecord.model_validate(record))
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid slot record: {e.error_count()} invalid field(s)") from e
    return out


def ensure_availability(db: Session, product_id: int, day: date) -> Availability:
    """Upsert by unique (product_id, date). Creates the Product row too if it does not exist yet."""
    insert_ignore_conflict(db, Product, ["id"], id=product_id)
    insert_ignore_conflict(db, Availability, ["product_id", "date"], product_id=product_id, date=day)
    return (
        db.query(Availability)
        .filter(Availability.product_id == product_id, Availability.date == day)
        .one()
    )


def _pax_type_id(db: Session, pax: PaxRecord, cache: dict[str, int]) -> int:
    """Find or create the pax type. Concurrent creators collide on the unique type; the first row wins."""
    if pax.type in cache:
        return cache[pax.type]
    row = db.query(PaxType.id).filter(PaxType.type == pax.type).first()
    if row is None:
        insert_ignore_conflict(
            db,
            PaxType,
            ["type"],
            type=pax.type,
            name=pax.name,
            description=pax.description,
        )
        row = db.query(PaxType.id).filter(PaxType.type == pax.type).one()
    cache[pax.type] = row.id
    return row.id


def _apply_slot_fields(slot: TimeSlot, record: SlotRecord, availability_id: int) -> None:
    slot.availability_id = availability_id
    slot.start_time = record.start_time
    slot.end_time = record.end_time
    slot.variant_id = record.variant_id
    slot.currency_code = record.currency_code
    slot.remaining = record.remaining


def _delete_pax_rows(db: Session, time_slot_ids: list[int]) -> None:
    if time_slot_ids:
        db.query(PaxAvailability).filter(PaxAvailability.time_slot_id.in_(time_slot_ids)).delete(
            synchronize_session=False
        )


def _slots_by_provider_id(db: Session, provider_slot_ids: Iterable[str]) -> dict[str, TimeSlot]:
    ids = sorted(set(provider_slot_ids))
    if not ids:
        return {}
    rows = db.query(TimeSlot).filter(TimeSlot.provider_slot_id.in_(ids)).all()
    return {row.provider_slot_id: row for row in rows}


def _slot_by_provider_id(db: Session, provider_slot_id: str) -> TimeSlot | None:
    return db.query(TimeSlot).filter(TimeSlot.provider_slot_id == provider_slot_id).one_or_none()


def _create_slot(db: Session, availability_id: int, record: SlotRecord) -> tuple[TimeSlot, bool]:
    """
    Insert a new slot inside a savepoint. If another merge (for a different date) created the same
    provider_slot_id after our lookup, re-read once and update that row instead.
    Returns (slot, created).
    """
    slot = TimeSlot(provider_slot_id=record.provider_slot_id)
    _apply_slot_fields(slot, record, availability_id)
    try:
        with db.begin_nested():
            db.add(slot)
            db.flush()
        return slot, True
    except IntegrityError:
        logger.info("TimeSlot %s created concurrently; re-reading", record.provider_slot_id)
    existing = _slot_by_provider_id(db, record.provider_slot_id)
    if existing is None:
        raise RaceConflict(f"TimeSlot {record.provider_slot_id} conflicted on insert but was not found on re-read")
    _delete_pax_rows(db, [existing.id])
    _apply_slot_fields(existing, record, availability_id)
    db.flush()
    return existing, False


def merge_snapshot(
    db: Session,
    product_id: int,
    day: date | str,
    snapshot: Iterable[SlotRecord | dict[str, Any]],
) -> MergeResult:
    """
    Reconcile one snapshot into the session without committing. Caller owns the transaction
    (ReconciliationEngine.merge commits or rolls back as a unit).
    """
    day = parse_date(day)
    records = coerce_snapshot(snapshot)
    result = MergeResult(product_id=product_id, day=day)

    availability = ensure_availability(db, product_id, day)
    result.availability_id = availability.id

    # Identity lookup first: rows for these provider ids on this date or any other.
    incoming_ids = {r.provider_slot_id for r in records}
    by_provider_id = _slots_by_provider_id(db, incoming_ids)

    # Purge this date's slots that the provider no longer returns.
    current = (
        db.query(TimeSlot.id, TimeSlot.provider_slot_id)
        .filter(TimeSlot.availability_id == availability.id)
        .all()
    )
    stale_ids = [sid for sid, pid in current if pid not in incoming_ids]
    if stale_ids:
        _delete_pax_rows(db, stale_ids)
        db.query(TimeSlot).filter(TimeSlot.id.in_(stale_ids)).delete(synchronize_session=False)
        result.deleted = len(stale_ids)

    pax_type_cache: dict[str, int] = {}
    for record in records:
        slot = by_provider_id.get(record.provider_slot_id)
        if slot is not None:
            _delete_pax_rows(db, [slot.id])
            if slot.availability_id != availability.id:
                logger.debug(
                    "Re-parenting time slot %s from availability %s to %s",
                    record.provider_slot_id,
                    slot.availability_id,
                    availability.id,
                )
                result.reparented += 1
            else:
                result.updated += 1
            _apply_slot_fields(slot, record, availability.id)
            db.flush()
        else:
            slot, created = _create_slot(db, availability.id, record)
            if created:
                result.created += 1
                logger.debug("Created new time slot with providerSlotId: %s", record.provider_slot_id)
            else:
                result.reparented += 1
        by_provider_id[record.provider_slot_id] = slot

        for pax in record.pax_availability:
            db.add(
                PaxAvailability(
                    time_slot_id=slot.id,
                    pax_type_id=_pax_type_id(db, pax, pax_type_cache),
                    price=pax.price.to_json(),
                    min=pax.min,
                    max=pax.max,
                    remaining=pax.remaining,
                    is_primary=bool(pax.is_primary),
                )
            )
            result.pax_written += 1
        # Pending pax rows must hit the DB before a later duplicate record deletes by slot id
        db.flush()

    return result


class ReconciliationEngine:
    """Transactional, per-(product, date) exclusive wrapper around merge_snapshot."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def merge(
        self,
        product_id: int,
        day: date | str,
        snapshot: Iterable[SlotRecord | dict[str, Any]],
    ) -> MergeResult:
        """
        Replace the stored slots of (product_id, day) with snapshot. ValidationError for a bad
        date or record is raised before storage is touched; storage failures roll back the
        whole merge and surface as MergeError.
        """
        day = parse_date(day)
        records = coerce_snapshot(snapshot)
        date_str = format_api_date(day)
        with merge_lock(product_id, day):
            db = self._session_factory()
            try:
                result = merge_snapshot(db, product_id, day, records)
                db.commit()
            except RaceConflict:
                db.rollback()
                raise
            except SQLAlchemyError as e:
                db.rollback()
                logger.error("Failed to save inventory data for product %s on %s: %s", product_id, date_str, e)
                raise MergeError(f"Failed to merge product {product_id} on {date_str}: {e}") from e
            finally:
                db.close()
        logger.info(
            "Saved inventory for product %s on %s: %s slots (created=%s updated=%s reparented=%s deleted=%s)",
            product_id,
            date_str,
            result.slot_count,
            result.created,
            result.updated,
            result.reparented,
            result.deleted,
        )
        return result
