"""Daily and intraday series helpers.

This module keeps the invariant that ``daily`` holds exactly the
latest intraday entry per date. Ingest, compaction, and migration
all derive daily views through these helpers.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable

from core.types import HistoryEntry, MinerHistory


def latest_entry_per_date(entries: Iterable[HistoryEntry]) -> dict[date, HistoryEntry]:
    """Map each date to its entry with the greatest timestamp.

    Ties keep the entry seen last, so a later row of the same batch wins.
    """
    latest: dict[date, HistoryEntry] = {}
    for entry in entries:
        current = latest.get(entry.date)
        if current is None or entry.timestamp >= current.timestamp:
            latest[entry.date] = entry
    return latest


def derive_daily(intraday: Iterable[HistoryEntry]) -> tuple[HistoryEntry, ...]:
    """Build the daily view from intraday entries, ascending by date."""
    latest = latest_entry_per_date(intraday)
    return tuple(latest[entry_date] for entry_date in sorted(latest))


def sort_by_timestamp(entries: Iterable[HistoryEntry]) -> tuple[HistoryEntry, ...]:
    """Sort entries ascending by timestamp, keeping arrival order on ties."""
    return tuple(sorted(entries, key=lambda entry: entry.timestamp))


def append_history_entry(history: MinerHistory, entry: HistoryEntry) -> MinerHistory:
    """Return a history with one more intraday entry and its date's daily refreshed.

    Args:
        history: Existing miner history.
        entry: Newly ingested observation.

    Returns:
        New history value; the input is not modified.
    """
    intraday = sort_by_timestamp(history.intraday + (entry,))
    same_date = [item for item in intraday if item.date == entry.date]
    latest_for_date = latest_entry_per_date(same_date)[entry.date]
    daily = [item for item in history.daily if item.date != entry.date]
    daily.append(latest_for_date)
    daily.sort(key=lambda item: item.date)
    return MinerHistory(daily=tuple(daily), intraday=intraday)
