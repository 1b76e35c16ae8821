"""Unit tests for key-value store implementations."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import LedgerStoreError
from store.kv_store import FileKeyValueStore, MemoryKeyValueStore


def test_file_store_returns_written_bytes(tmp_path: Path) -> None:
    """Values written to the file store should read back unchanged."""
    kv_store = FileKeyValueStore(tmp_path)
    kv_store.set("minerledger_miners", b"[]")

    value = kv_store.get("minerledger_miners")

    assert value == b"[]"


def test_file_store_returns_none_for_absent_key(tmp_path: Path) -> None:
    """Missing keys should read as None."""
    kv_store = FileKeyValueStore(tmp_path)

    assert kv_store.get("minerledger_miners") is None


def test_file_store_rejects_foreign_keys(tmp_path: Path) -> None:
    """Keys outside the ledger prefix should be refused."""
    kv_store = FileKeyValueStore(tmp_path)

    with pytest.raises(LedgerStoreError):
        kv_store.set("../escape", b"x")


def test_file_store_remove_ignores_absent_key(tmp_path: Path) -> None:
    """Removing a missing key should be a no-op."""
    kv_store = FileKeyValueStore(tmp_path)

    kv_store.remove("minerledger_miners")

    assert kv_store.approximate_size_bytes() == 0


def test_file_store_enforces_quota(tmp_path: Path) -> None:
    """Writes that would exceed the quota should fail."""
    kv_store = FileKeyValueStore(tmp_path, quota_bytes=64)

    with pytest.raises(LedgerStoreError):
        kv_store.set("minerledger_miners", b"x" * 100)

    assert kv_store.get("minerledger_miners") is None


def test_memory_store_quota_counts_replaced_value() -> None:
    """Overwriting a key should not count the old value against the quota."""
    kv_store = MemoryKeyValueStore(quota_bytes=60)
    kv_store.set("minerledger_miners", b"x" * 30)

    kv_store.set("minerledger_miners", b"y" * 30)

    assert kv_store.get("minerledger_miners") == b"y" * 30
