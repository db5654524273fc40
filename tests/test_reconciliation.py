import threading
import time
from datetime import date

import pytest

from conftest import make_pax, make_slot
from slot_sync.core.errors import MergeError, RaceConflict, ValidationError
from slot_sync.models import Availability, PaxAvailability, PaxType, Product, TimeSlot
from slot_sync.services import reconciliation
from slot_sync.services.inventory.types import SlotRecord
from slot_sync.services.reconciliation import ReconciliationEngine, ensure_availability, merge_lock


@pytest.fixture
def engine_(session_factory) -> ReconciliationEngine:
    return ReconciliationEngine(session_factory)


def _slots_on(db, product_id: int, day: date) -> list[TimeSlot]:
    avail = db.query(Availability).filter_by(product_id=product_id, date=day).one()
    return db.query(TimeSlot).filter_by(availability_id=avail.id).order_by(TimeSlot.id).all()


def test_first_merge_creates_availability_slot_and_pax(engine_, db) -> None:
    result = engine_.merge(14, "20250601", [make_slot("S1", remaining=5)])

    assert result.created == 1
    avail = db.query(Availability).one()
    assert (avail.product_id, avail.date) == (14, date(2025, 6, 1))
    slot = db.query(TimeSlot).one()
    assert slot.provider_slot_id == "S1"
    assert slot.availability_id == avail.id
    assert (slot.start_time, slot.end_time, slot.variant_id, slot.currency_code) == ("10:00", "11:00", 1, "USD")
    pax = db.query(PaxAvailability).one()
    assert pax.time_slot_id == slot.id
    assert pax.remaining == 5
    assert pax.is_primary is True
    assert pax.price == {"discount": 10, "finalPrice": 50, "originalPrice": 60, "currencyCode": "USD"}
    assert db.query(PaxType).one().type == "adult"


def test_product_row_is_created_lazily(engine_, db) -> None:
    assert db.get(Product, 14) is None
    engine_.merge(14, "20250601", [make_slot("S1")])
    assert db.get(Product, 14) is not None


def test_same_day_rerun_updates_in_place_and_keeps_slot_identity(engine_, db) -> None:
    # Existing rows are looked up before the purge, so a re-delivered slot keeps its id.
    engine_.merge(14, "20250601", [make_slot("S1", remaining=5)])
    first_id = db.query(TimeSlot.id).scalar()

    result = engine_.merge(14, "20250601", [make_slot("S1", remaining=3)])

    db.expire_all()
    assert result.created == 0
    assert result.updated == 1
    slot = db.query(TimeSlot).one()
    assert slot.id == first_id
    assert slot.remaining == 3
    pax = db.query(PaxAvailability).one()
    assert pax.remaining == 3


def test_same_snapshot_on_another_date_reparents_instead_of_duplicating(engine_, db) -> None:
    engine_.merge(14, "20250601", [make_slot("S1")])
    slot_id = db.query(TimeSlot.id).scalar()

    result = engine_.merge(14, "20250602", [make_slot("S1")])

    db.expire_all()
    assert result.reparented == 1
    assert db.query(TimeSlot).count() == 1
    assert [s.id for s in _slots_on(db, 14, date(2025, 6, 2))] == [slot_id]
    # Old date keeps its Availability row but no longer owns the slot
    assert _slots_on(db, 14, date(2025, 6, 1)) == []
    assert db.query(Availability).count() == 2
    assert db.query(PaxAvailability).count() == 1


def test_every_snapshot_slot_is_stored_exactly_once_under_the_date(engine_, db) -> None:
    snapshot = [make_slot(f"S{i}", start_time=f"{9 + i:02d}:00") for i in range(5)]
    engine_.merge(15, "20250610", snapshot)
    engine_.merge(15, "20250610", snapshot)

    slots = _slots_on(db, 15, date(2025, 6, 10))
    assert sorted(s.provider_slot_id for s in slots) == [f"S{i}" for i in range(5)]
    assert db.query(TimeSlot).count() == 5
    assert db.query(PaxAvailability).count() == 5


def test_slots_missing_from_new_snapshot_are_purged_with_their_pax(engine_, db) -> None:
    engine_.merge(14, "20250601", [make_slot("S1"), make_slot("S2", start_time="12:00")])

    result = engine_.merge(14, "20250601", [make_slot("S1")])

    assert result.deleted == 1
    assert [s.provider_slot_id for s in _slots_on(db, 14, date(2025, 6, 1))] == ["S1"]
    assert db.query(PaxAvailability).count() == 1


def test_empty_snapshot_empties_the_date_but_keeps_availability(engine_, db) -> None:
    engine_.merge(14, "20250601", [make_slot("S1")])

    result = engine_.merge(14, "20250601", [])

    assert result.deleted == 1
    assert db.query(Availability).count() == 1
    assert db.query(TimeSlot).count() == 0
    assert db.query(PaxAvailability).count() == 0


def test_pax_types_are_deduplicated_and_first_writer_wins(engine_, db) -> None:
    pax = [make_pax("adult", name="Adult"), make_pax("child", name="Child", is_primary=False)]
    engine_.merge(14, "20250601", [make_slot("S1", pax=pax), make_slot("S2", start_time="12:00", pax=pax)])
    engine_.merge(
        14,
        "20250602",
        [make_slot("S3", pax=[make_pax("adult", name="Grown-up", description="changed")])],
    )

    types = {t.type: t for t in db.query(PaxType).all()}
    assert sorted(types) == ["adult", "child"]
    assert types["adult"].name == "Adult"
    assert types["adult"].description == "Ages 18+"
    assert db.query(PaxAvailability).count() == 5


def test_is_primary_defaults_to_false(engine_, db) -> None:
    engine_.merge(14, "20250601", [make_slot("S1", pax=[make_pax(is_primary=None)])])
    assert db.query(PaxAvailability).one().is_primary is False


def test_duplicate_provider_id_within_snapshot_keeps_one_row_last_wins(engine_, db) -> None:
    engine_.merge(
        14,
        "20250601",
        [make_slot("S1", remaining=5), make_slot("S1", remaining=2, start_time="15:00")],
    )

    slot = db.query(TimeSlot).one()
    assert (slot.remaining, slot.start_time) == (2, "15:00")
    assert db.query(PaxAvailability).one().remaining == 2


def test_invalid_date_fails_before_touching_storage(engine_, db) -> None:
    with pytest.raises(ValidationError):
        engine_.merge(14, "20250231", [make_slot("S1")])
    with pytest.raises(ValidationError):
        engine_.merge(14, "2025/06/01", [make_slot("S1")])
    assert db.query(Product).count() == 0
    assert db.query(Availability).count() == 0


def test_invalid_record_fails_before_touching_storage(engine_, db) -> None:
    bad = make_slot("S1")
    del bad["providerSlotId"]
    with pytest.raises(ValidationError):
        engine_.merge(14, "20250601", [bad])
    assert db.query(Availability).count() == 0


def test_storage_failure_rolls_back_whole_merge(engine, engine_, db) -> None:
    engine_.merge(14, "20250601", [make_slot("S1")])
    PaxAvailability.__table__.drop(engine)

    with pytest.raises(MergeError):
        engine_.merge(14, "20250602", [make_slot("S2")])

    db.expire_all()
    assert db.query(Availability).count() == 1
    assert [s.provider_slot_id for s in db.query(TimeSlot).all()] == ["S1"]


def test_create_slot_clash_rereads_and_reparents_existing_row(engine_, db) -> None:
    engine_.merge(14, "20250601", [make_slot("S1", remaining=5)])
    slot_id = db.query(TimeSlot.id).scalar()
    june_2 = ensure_availability(db, 14, date(2025, 6, 2))

    record = SlotRecord.model_validate(make_slot("S1", remaining=2))

    slot, created = reconciliation._create_slot(db, june_2.id, record)
    db.commit()

    assert created is False
    assert slot.id == slot_id
    db.expire_all()
    stored = db.query(TimeSlot).one()
    assert (stored.availability_id, stored.remaining) == (june_2.id, 2)
    # Old pax rows go with the re-read; the caller writes the new ones
    assert db.query(PaxAvailability).count() == 0


def test_merge_recovers_when_slot_appears_after_lookup(engine_, db, monkeypatch) -> None:
    engine_.merge(14, "20250601", [make_slot("S1", remaining=5)])
    slot_id = db.query(TimeSlot.id).scalar()
    # Another merge created S1 between our lookup and our insert
    monkeypatch.setattr(reconciliation, "_slots_by_provider_id", lambda db, ids: {})

    result = engine_.merge(14, "20250602", [make_slot("S1", remaining=2)])

    db.expire_all()
    assert (result.created, result.reparented) == (0, 1)
    assert [s.id for s in _slots_on(db, 14, date(2025, 6, 2))] == [slot_id]
    pax = db.query(PaxAvailability).one()
    assert (pax.time_slot_id, pax.remaining) == (slot_id, 2)


def test_clash_without_row_on_reread_raises_race_conflict_and_rolls_back(engine_, db, monkeypatch) -> None:
    engine_.merge(14, "20250601", [make_slot("S1", remaining=5)])
    monkeypatch.setattr(reconciliation, "_slots_by_provider_id", lambda db, ids: {})
    monkeypatch.setattr(reconciliation, "_slot_by_provider_id", lambda db, provider_slot_id: None)

    with pytest.raises(RaceConflict):
        engine_.merge(14, "20250602", [make_slot("S1", remaining=2), make_slot("S2", start_time="12:00")])

    db.expire_all()
    assert db.query(Availability).count() == 1
    slot = db.query(TimeSlot).one()
    assert (slot.provider_slot_id, slot.remaining) == ("S1", 5)
    assert db.query(PaxAvailability).one().remaining == 5


def test_merge_lock_entry_lives_only_while_held() -> None:
    key = (14, date(2025, 6, 1))
    with merge_lock(*key):
        assert key in reconciliation._merge_locks
        assert (14, date(2025, 6, 2)) not in reconciliation._merge_locks
    assert key not in reconciliation._merge_locks


def test_concurrent_merges_of_same_product_and_date_run_one_after_another(engine_, db, monkeypatch) -> None:
    real_merge_snapshot = reconciliation.merge_snapshot
    first_inside = threading.Event()
    release_first = threading.Event()
    events: list[str] = []

    def slow_merge_snapshot(session, product_id, day, records):
        name = records[0].provider_slot_id
        events.append(f"start {name}")
        if name == "A":
            first_inside.set()
            release_first.wait(5)
        result = real_merge_snapshot(session, product_id, day, records)
        events.append(f"end {name}")
        return result

    monkeypatch.setattr(reconciliation, "merge_snapshot", slow_merge_snapshot)

    first = threading.Thread(target=engine_.merge, args=(14, "20250601", [make_slot("A")]))
    second = threading.Thread(target=engine_.merge, args=(14, "20250601", [make_slot("B")]))
    first.start()
    assert first_inside.wait(5)
    second.start()
    time.sleep(0.2)
    assert events == ["start A"]

    release_first.set()
    first.join(5)
    second.join(5)

    assert events == ["start A", "end A", "start B", "end B"]
    assert [s.provider_slot_id for s in _slots_on(db, 14, date(2025, 6, 1))] == ["B"]
    assert reconciliation._merge_locks == {}
