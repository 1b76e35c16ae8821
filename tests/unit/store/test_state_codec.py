"""Unit tests for ledger JSON payload conversion."""

from __future__ import annotations

import pytest

from core.errors import LedgerStoreError
from store.state_codec import (
    audit_record_from_payload,
    decode_json,
    miner_from_payload,
    price_history_from_payload,
)


def test_decode_json_raises_for_corrupt_bytes() -> None:
    """Corrupt stored values should raise a store error naming the key."""
    with pytest.raises(LedgerStoreError, match="minerledger_miners"):
        decode_json(b"{not json", "minerledger_miners")


def test_miner_from_payload_accepts_trailing_z_timestamp() -> None:
    """Older payloads with ``Z`` suffixed instants should load."""
    payload = {
        "name": "A",
        "hashrate": 100,
        "price": 1000,
        "date": "2024-03-01",
        "upload_timestamp": "2024-03-01T09:00:00Z",
        "upload_id": "u-1",
    }

    miner = miner_from_payload(payload)

    assert miner.upload_timestamp.hour == 9 and miner.efficiency is None


def test_price_history_from_payload_rejects_flat_lists() -> None:
    """Unmigrated flat history should fail loudly."""
    with pytest.raises(LedgerStoreError):
        price_history_from_payload({"A": [{"price": 1.0}]})


def test_audit_record_from_payload_defaults_missing_snapshot_fields() -> None:
    """Snapshots lacking some maps should decode them as empty."""
    payload = {
        "id": "audit-1",
        "date": "2024-03-01",
        "timestamp": "2024-03-01T09:00:00+00:00",
        "file_name": "a.csv",
        "strategy": "merge",
        "snapshot": {"miners": []},
    }

    record = audit_record_from_payload(payload)

    assert record.snapshot is not None and record.snapshot.max_prices == {}
