"""Unit tests for the power reference table."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.errors import LedgerConfigError
from ingest.power_reference import BUILTIN_POWER_TABLE, load_power_table, lookup_power


def test_lookup_power_matches_exact_name() -> None:
    """Exact names should resolve to their rated watts."""
    watts = lookup_power(BUILTIN_POWER_TABLE, "Antminer S21 - 200 TH/s")

    assert watts == 3500


def test_lookup_power_tolerates_extra_whitespace() -> None:
    """Whitespace differences should not prevent a match."""
    watts = lookup_power({"Antminer S21 - 200 TH/s": 3500}, "  Antminer  S21 - 200 TH/s ")

    assert watts == 3500


def test_lookup_power_returns_none_for_unknown_name() -> None:
    """Unknown names should not resolve."""
    watts = lookup_power(BUILTIN_POWER_TABLE, "Prototype X1")

    assert watts is None


def test_load_power_table_merges_yaml_override(tmp_path: Path) -> None:
    """Override entries should add to and replace built-in entries."""
    pytest.importorskip("yaml")
    override_path = tmp_path / "power.yaml"
    override_path.write_text(
        "Prototype X1: 1200\n'Antminer S21 - 200 TH/s': 3600\n",
        encoding="utf-8",
    )

    table = load_power_table(override_path)

    assert table["Prototype X1"] == 1200 and table["Antminer S21 - 200 TH/s"] == 3600


def test_load_power_table_rejects_non_positive_watts(tmp_path: Path) -> None:
    """Override values must be positive numbers."""
    pytest.importorskip("yaml")
    override_path = tmp_path / "power.yaml"
    override_path.write_text("Prototype X1: -5\n", encoding="utf-8")

    with pytest.raises(LedgerConfigError):
        load_power_table(override_path)


def test_load_power_table_rejects_missing_override(tmp_path: Path) -> None:
    """A configured override path must exist."""
    pytest.importorskip("yaml")

    with pytest.raises(LedgerConfigError):
        load_power_table(tmp_path / "missing.yaml")
