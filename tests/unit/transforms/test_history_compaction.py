"""Unit tests for history compaction."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

from structlog.testing import capture_logs

from core.types import AuditRecord, LedgerState, MinerHistory
from core.history_series import derive_daily
from tests.ledger_factories import make_entry
from transforms.history_compaction import compact

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def _entries_on(days_ago: int) -> list:
    day_start = NOW - timedelta(days=days_ago)
    entry_date = day_start.date()
    morning = day_start.replace(hour=8)
    evening = day_start.replace(hour=18)
    return [make_entry(entry_date, morning, price=100.0), make_entry(entry_date, evening, price=110.0)]


def _state_with_history() -> LedgerState:
    intraday = tuple(_entries_on(40) + _entries_on(1))
    history = MinerHistory(daily=derive_daily(intraday), intraday=intraday)
    return LedgerState(price_history={"A": history})


def _audit_record(index: int) -> AuditRecord:
    return AuditRecord(
        audit_id=f"audit-{index}",
        date=date(2024, 6, 1),
        timestamp=NOW - timedelta(hours=index),
        file_name=f"upload-{index}.csv",
        miner_count=1,
        new_miner_count=0,
        updated_count=1,
        strategy="merge",
        snapshot=None,
    )


def test_compact_keeps_only_latest_entry_of_old_days() -> None:
    """Entries older than the window should collapse to one per date."""
    compacted = compact(_state_with_history(), retention_days=30, now=NOW)

    old_day = (NOW - timedelta(days=40)).date()
    old_entries = [e for e in compacted.price_history["A"].intraday if e.date == old_day]
    assert [entry.price for entry in old_entries] == [110.0]


def test_compact_keeps_every_recent_entry() -> None:
    """Entries inside the window should all survive."""
    compacted = compact(_state_with_history(), retention_days=30, now=NOW)

    assert len(compacted.price_history["A"].intraday) == 3


def test_compact_rebuilds_daily_from_latest_entries() -> None:
    """Daily should hold exactly the latest entry per date."""
    compacted = compact(_state_with_history(), retention_days=30, now=NOW)

    history = compacted.price_history["A"]
    assert history.daily == derive_daily(history.intraday)


def test_compact_is_idempotent() -> None:
    """Compacting twice with the same reference instant changes nothing."""
    once = compact(_state_with_history(), retention_days=30, now=NOW)

    twice = compact(once, retention_days=30, now=NOW)

    assert twice == once


def test_compact_truncates_audit_trail_to_cap() -> None:
    """Only the most recent audit records should be kept."""
    records = tuple(_audit_record(index) for index in range(12))
    state = LedgerState(upload_history=records)

    compacted = compact(state, audit_cap=10, now=NOW)

    assert compacted.upload_history == records[2:]


def test_compact_logs_summary_event() -> None:
    """Compaction should report before and after entry counts."""
    with capture_logs() as captured:
        compact(_state_with_history(), retention_days=30, now=NOW)

    assert captured[0]["intraday_entries_before"] == 4 and captured[0]["intraday_entries_after"] == 3


def _forty_day_state() -> LedgerState:
    intraday = tuple(entry for days_ago in range(39, -1, -1) for entry in _entries_on(days_ago))
    history = MinerHistory(daily=derive_daily(intraday), intraday=intraday)
    return LedgerState(price_history={"A": history})


def test_compact_forty_days_keeps_daily_union_recent_window() -> None:
    """Intraday should be the daily entries plus everything inside the window."""
    state = _forty_day_state()
    cutoff = NOW - timedelta(days=30)
    original = state.price_history["A"]
    expected_ids = {entry.upload_id for entry in original.daily} | {
        entry.upload_id for entry in original.intraday if entry.timestamp >= cutoff
    }

    history = compact(state, retention_days=30, now=NOW).price_history["A"]

    assert len(history.daily) == 40
    assert {entry.upload_id for entry in history.intraday} == expected_ids
    assert len(history.intraday) == len(expected_ids)


def test_compact_reads_naive_reference_instant_as_utc() -> None:
    """A naive reference instant should give the same result as its UTC form."""
    aware = compact(_state_with_history(), retention_days=30, now=NOW)

    naive = compact(_state_with_history(), retention_days=30, now=NOW.replace(tzinfo=None))

    assert naive == aware
