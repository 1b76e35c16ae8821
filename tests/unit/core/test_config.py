"""Unit tests for core config parsing."""

from __future__ import annotations

import os

import pytest

from core.config import LedgerConfig
from core.errors import LedgerConfigError


def test_from_env_reads_data_root(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should resolve data root from environment."""
    monkeypatch.setenv("MINERLEDGER_DATA_ROOT", "./.tmp-ledger")

    config = LedgerConfig.from_env()

    assert config.data_root.name == ".tmp-ledger"


def test_from_env_uses_default_retention(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should default to a thirty-day retention window."""
    monkeypatch.delenv("MINERLEDGER_RETENTION_DAYS", raising=False)

    config = LedgerConfig.from_env()

    assert config.retention_days == 30


def test_from_env_leaves_quota_unset_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    """Store quota should be unlimited unless configured."""
    monkeypatch.delenv("MINERLEDGER_STORE_QUOTA_BYTES", raising=False)

    config = LedgerConfig.from_env()

    assert config.store_quota_bytes is None


def test_from_env_raises_for_invalid_audit_cap(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for a non-numeric audit cap."""
    monkeypatch.setenv("MINERLEDGER_AUDIT_CAP", "not-a-number")

    with pytest.raises(LedgerConfigError):
        LedgerConfig.from_env()

    assert os.getenv("MINERLEDGER_AUDIT_CAP") == "not-a-number"


def test_from_env_raises_for_zero_upload_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should reject a non-positive upload size limit."""
    monkeypatch.setenv("MINERLEDGER_MAX_UPLOAD_BYTES", "0")

    with pytest.raises(LedgerConfigError):
        LedgerConfig.from_env()
