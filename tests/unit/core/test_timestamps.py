"""Unit tests for timestamp helpers."""

from __future__ import annotations

from datetime import date, timezone

import pytest

from core.timestamps import parse_day, parse_instant


def test_parse_instant_reads_trailing_z_as_utc() -> None:
    """A ``Z`` suffix should parse as UTC."""
    parsed = parse_instant("2024-01-02T12:00:00Z")

    assert parsed.tzinfo == timezone.utc and parsed.hour == 12


def test_parse_instant_treats_naive_values_as_utc() -> None:
    """Instants without offset should be assumed UTC."""
    parsed = parse_instant("2024-01-02T12:00:00")

    assert parsed.utcoffset().total_seconds() == 0


def test_parse_day_accepts_full_instant() -> None:
    """Date parsing should tolerate a full ISO instant."""
    parsed = parse_day("2024-01-02T18:30:00+00:00")

    assert parsed == date(2024, 1, 2)


def test_parse_day_rejects_garbage() -> None:
    """Unparseable dates should raise ValueError."""
    with pytest.raises(ValueError):
        parse_day("yesterday")
