"""Integration tests for upload, rollback, and compaction workflows."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from core.config import LedgerConfig
from store.ledger_sdk import LedgerClient
from tests.fixture_paths import fixture_path
from tests.ledger_factories import make_record

FIRST_DAY = date(2024, 3, 1)
SECOND_DAY = date(2024, 3, 2)


def _client(data_root: Path) -> LedgerClient:
    config = replace(LedgerConfig.from_env(), data_root=data_root, power_table_path=None)
    return LedgerClient(config)


def _upload(client: LedgerClient, name: str, data_date: date, strategy: str = "merge"):
    staged = client.stage_upload(fixture_path(f"uploads/{name}"), data_date, strategy)
    return staged, client.confirm_upload(staged)


def test_second_upload_previews_price_update(tmp_path: Path) -> None:
    """A re-priced miner from a rich sheet should preview as updated."""
    client = _client(tmp_path / "ledger")
    _upload(client, "flat_prices.csv", FIRST_DAY)

    staged = client.stage_upload(fixture_path("uploads/rich_prices.csv"), SECOND_DAY)

    assert [update.name for update in staged.preview.updated] == ["Antminer S21 - 200 TH/s"]


def test_rollback_survives_reopen(tmp_path: Path) -> None:
    """Rolling back the second upload should persist the first upload's state."""
    client = _client(tmp_path / "ledger")
    _upload(client, "flat_prices.csv", FIRST_DAY)
    after_first = client.state.snapshot()
    _, second_record = _upload(client, "rich_prices.csv", SECOND_DAY)
    client.rollback(second_record.audit_id)

    reopened = _client(tmp_path / "ledger")

    assert reopened.state.snapshot() == after_first


def test_replace_upload_drops_absent_miners_but_remembers_them(tmp_path: Path) -> None:
    """Replace should shrink the snapshot while known names persist."""
    client = _client(tmp_path / "ledger")
    client.ingest_records(
        [make_record("A"), make_record("B"), make_record("C")], "seed.csv", "merge", FIRST_DAY
    )
    batch = [make_record("A", price=900.0), make_record("D")]
    preview = client.preview(batch, "replace")
    client.ingest_records(batch, "replace.csv", "replace", SECOND_DAY)

    reopened = _client(tmp_path / "ledger")

    assert preview.removed == ("B", "C") and reopened.state.known_miners == frozenset(
        {"A", "B", "C", "D"}
    )


def test_compaction_keeps_latest_daily_entry_of_old_dates(tmp_path: Path) -> None:
    """Old dates should keep one intraday entry while recent ones keep all."""
    now = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)
    client = _client(tmp_path / "ledger")
    for days_ago in (40, 1):
        day_start = now - timedelta(days=days_ago)
        for hour, price in ((8, 100.0), (18, 110.0)):
            instant = day_start.replace(hour=hour)
            record = make_record("A", price=price, data_date=day_start.date(), instant=instant)
            client.ingest_records([record], "a.csv", "merge", day_start.date(), instant)

    compacted = client.compact(retention_days=30, now=now)

    assert [entry.timestamp.hour for entry in compacted.price_history["A"].intraday] == [
        18,
        8,
        18,
    ]


def test_compaction_over_forty_days_of_uploads(tmp_path: Path) -> None:
    """Forty days of uploads should keep every date and only recent intraday detail."""
    now = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)
    client = _client(tmp_path / "ledger")
    for days_ago in range(39, -1, -1):
        day_start = now - timedelta(days=days_ago)
        for hour, price in ((8, 100.0), (18, 110.0)):
            instant = day_start.replace(hour=hour)
            record = make_record("A", price=price, data_date=day_start.date(), instant=instant)
            client.ingest_records([record], "a.csv", "merge", day_start.date(), instant)

    history = client.compact(retention_days=30, now=now).price_history["A"]

    recent_mornings = [entry for entry in history.intraday if entry.timestamp.hour == 8]
    assert len(history.daily) == 40 and len(history.intraday) == 70
    assert min(entry.timestamp for entry in recent_mornings) >= now - timedelta(days=30)
    assert len(_client(tmp_path / "ledger").state.price_history["A"].intraday) == len(
        history.intraday
    )
