import json
from datetime import datetime, timedelta, timezone

import pytest

from petcare.core.errors import PersistenceCorrupt
from petcare.core.storage import JsonFileStore, MemoryStore
from petcare.models.pet import EVENT_LOG_LIMIT, STAT_HISTORY_LIMIT, EventLog, EventLogEntry, StatHistory
from petcare.models.profiles import DOG, ActionKind, Archetype
from petcare.models.stats import StatVector
from petcare.services.catchup import fresh_state
from petcare.services.persistence import PetRepository, parse_record

KEY = "vpet_pet_data"
NOW = datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc)


def test_saved_record_uses_stored_field_names(make_state):
    store = MemoryStore()
    state = make_state()
    state.log_event("Finished walking", NOW, kind=ActionKind.EXERCISE)
    PetRepository(store, KEY).save(state, NOW)

    data = json.loads(store.get(KEY))
    assert data["pet"]["type"] == "dog"
    assert data["pet"]["name"] == "Rex"
    for field in ("totalSpent", "hasToy", "initialPurchases", "lastWalkTime", "lastBathTime",
                  "lastTrimNailsTime", "feedCount", "statHistory", "lastSaved", "events"):
        assert field in data
    assert data["events"][0]["kind"] == "exercise"


def test_load_rebuilds_the_same_pet(make_state):
    store = MemoryStore()
    repo = PetRepository(store, KEY)
    state = make_state(hunger=42)
    state.total_spent = 135
    state.ledger.feed_count = 7
    repo.save(state, NOW)

    loaded = repo.load().to_state(Archetype.DOG)

    assert loaded.pet.stats == state.pet.stats
    assert loaded.total_spent == 135
    assert loaded.ledger.feed_count == 7


@pytest.mark.parametrize("raw", ["not json", "[]", "{}", '{"pet": {"name": "Rex"}}', '"text"'])
def test_corrupt_records_load_as_absent(raw):
    store = MemoryStore({KEY: raw})
    assert PetRepository(store, KEY).load() is None
    with pytest.raises(PersistenceCorrupt):
        parse_record(raw)


def test_missing_record_is_absent():
    assert PetRepository(MemoryStore(), KEY).load() is None


def test_clear_removes_record(make_state):
    store = MemoryStore()
    repo = PetRepository(store, KEY)
    repo.save(make_state(), NOW)
    repo.clear()
    assert store.get(KEY) is None


def test_legacy_entries_are_classified_by_text():
    walked = EventLogEntry.model_validate({"message": "Finished walking", "timestamp": NOW.isoformat()})
    water = EventLogEntry.model_validate({"message": "Finished giving water", "timestamp": NOW.isoformat()})
    idle = EventLogEntry.model_validate({"message": "Rex barked at a sound 🐕", "timestamp": NOW.isoformat()})
    assert walked.kind is ActionKind.EXERCISE
    assert water.kind is ActionKind.WATER
    assert idle.kind is None


def test_explicit_null_kind_is_not_reclassified():
    entry = EventLogEntry.model_validate({"message": "Rex is going on a walk", "timestamp": NOW.isoformat(),
                                          "kind": None})
    assert entry.kind is None


def test_naive_timestamps_are_read_as_utc():
    entry = EventLogEntry.model_validate({"message": "x", "timestamp": "2024-03-04T10:00:00"})
    assert entry.timestamp == NOW


def test_event_log_keeps_newest_twenty():
    log = EventLog()
    for i in range(EVENT_LOG_LIMIT + 5):
        log.add(f"event {i}", NOW + timedelta(seconds=i))
    assert len(log) == EVENT_LOG_LIMIT
    assert log.entries[0].message == f"event {EVENT_LOG_LIMIT + 4}"
    assert log.entries[-1].message == "event 5"


def test_stat_history_caps_and_skips_unchanged():
    history = StatHistory()
    assert history.record(NOW, StatVector(hunger=1))
    assert not history.record(NOW + timedelta(seconds=1), StatVector(hunger=1))
    for i in range(STAT_HISTORY_LIMIT + 10):
        history.record(NOW + timedelta(seconds=i), StatVector(hunger=i % 100, energy=i // 100))
    assert len(history) == STAT_HISTORY_LIMIT
    snapshots = history.snapshots
    assert snapshots[0].t < snapshots[-1].t


def test_history_survives_round_trip():
    state = fresh_state(DOG, "Rex", NOW)
    state.set_stats(state.pet.stats.with_changes(hunger=10), NOW + timedelta(minutes=1), asleep=False)
    store = MemoryStore()
    PetRepository(store, KEY).save(state, NOW)
    record = PetRepository(store, KEY).load()
    assert [s.stats.hunger for s in record.stat_history] == [63, 10]


def test_json_file_store(tmp_path):
    store = JsonFileStore(tmp_path / "store.json")
    assert store.get(KEY) is None
    store.set(KEY, '{"a": 1}')
    store.set("other", "x")
    assert JsonFileStore(tmp_path / "store.json").get(KEY) == '{"a": 1}'
    store.delete(KEY)
    assert store.get(KEY) is None
    assert store.get("other") == "x"


def test_json_file_store_treats_garbage_as_empty(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{broken", encoding="utf-8")
    store = JsonFileStore(path)
    assert store.get(KEY) is None
    store.set(KEY, "fresh")
    assert store.get(KEY) == "fresh"
