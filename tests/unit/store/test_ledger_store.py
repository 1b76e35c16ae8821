"""Unit tests for ledger state persistence."""

from __future__ import annotations

import json
from datetime import date

import pytest
from structlog.testing import capture_logs

from core.constants import STORAGE_KEY_PRICE_HISTORY, STORAGE_KEY_VERSION
from core.errors import LedgerStoreError
from core.types import LedgerState
from ingest.ingest_engine import ingest
from store.kv_store import MemoryKeyValueStore
from store.ledger_store import LedgerStore
from store.state_codec import encode_json
from tests.fixture_paths import fixture_path
from tests.ledger_factories import make_record


def _ingested_state() -> LedgerState:
    batch = [make_record("A", power_consumption=3000, efficiency=30.0), make_record("B")]
    return ingest(batch, "seed.csv", "merge", date(2024, 3, 1), LedgerState()).state


def _store_with_legacy_history() -> tuple[MemoryKeyValueStore, LedgerStore]:
    kv_store = MemoryKeyValueStore()
    legacy_payload = json.loads(
        fixture_path("uploads/legacy_history.json").read_text(encoding="utf-8")
    )
    kv_store.set(STORAGE_KEY_PRICE_HISTORY, encode_json(legacy_payload))
    return kv_store, LedgerStore(kv_store)


def test_load_state_returns_saved_state() -> None:
    """Saved state should load back equal, audit snapshots included."""
    store = LedgerStore(MemoryKeyValueStore())
    state = _ingested_state()
    store.save_state(state)

    loaded = store.load_state()

    assert loaded == state


def test_load_state_returns_empty_state_for_empty_store() -> None:
    """A fresh store should load as the empty state."""
    store = LedgerStore(MemoryKeyValueStore())

    assert store.load_state() == LedgerState()


def test_load_state_warns_on_version_mismatch() -> None:
    """A different stored schema version should log a warning."""
    kv_store = MemoryKeyValueStore()
    kv_store.set(STORAGE_KEY_VERSION, encode_json("1.0.0"))

    with capture_logs() as captured:
        LedgerStore(kv_store).load_state()

    assert captured[0]["event"] == "storage_version_mismatch"


def test_save_state_raises_when_quota_exceeded() -> None:
    """Capacity failures should surface as store errors."""
    store = LedgerStore(MemoryKeyValueStore(quota_bytes=200))

    with pytest.raises(LedgerStoreError):
        store.save_state(_ingested_state())


def test_save_state_logs_failure_event() -> None:
    """A failed save should log the key that could not be written."""
    store = LedgerStore(MemoryKeyValueStore(quota_bytes=200))

    with capture_logs() as captured, pytest.raises(LedgerStoreError):
        store.save_state(_ingested_state())

    assert captured[-1]["event"] == "state_save_failed"


def test_save_state_records_last_saved_instant() -> None:
    """Saving should record when the state was written."""
    store = LedgerStore(MemoryKeyValueStore())

    store.save_state(_ingested_state())

    assert store.last_saved() is not None


def test_run_legacy_migration_rewrites_flat_history() -> None:
    """Flat legacy history should load as daily and intraday series."""
    _, store = _store_with_legacy_history()

    store.run_legacy_migration(today=date(2024, 5, 1))

    history = store.load_state().price_history["Antminer S19 Pro"]
    assert len(history.daily) == 2 and len(history.intraday) == 3


def test_run_legacy_migration_keeps_earnings_and_power() -> None:
    """Migrated camel-case fields should load into history entries."""
    _, store = _store_with_legacy_history()

    store.run_legacy_migration(today=date(2024, 5, 1))

    latest = store.load_state().price_history["Antminer S19 Pro"].intraday[-1]
    assert (latest.daily_earnings, latest.power_consumption, latest.efficiency) == (
        4.2,
        3250,
        29.5,
    )


def test_run_legacy_migration_runs_once() -> None:
    """A completed migration should not run again."""
    _, store = _store_with_legacy_history()
    store.run_legacy_migration(today=date(2024, 5, 1))

    assert store.run_legacy_migration(today=date(2024, 5, 1)) is False


def test_run_legacy_migration_marks_empty_store_done() -> None:
    """An empty store should be flagged as migrated."""
    store = LedgerStore(MemoryKeyValueStore())

    store.run_legacy_migration()

    assert store.migration_done()


def test_clear_all_removes_data_and_migration_flag() -> None:
    """Clearing should drop every key but the schema version."""
    store = LedgerStore(MemoryKeyValueStore())
    store.save_state(_ingested_state())
    store.run_legacy_migration()

    store.clear_all()

    assert store.load_state() == LedgerState() and not store.migration_done()


def test_clear_all_rewrites_schema_version() -> None:
    """The schema version should be present after a reset."""
    store = LedgerStore(MemoryKeyValueStore())

    store.clear_all()

    assert store.stored_version() == "1.1.0"
