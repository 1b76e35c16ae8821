"""History compaction.

This module bounds storage growth of miner time series and the audit
trail. Each intraday series keeps the latest entry of every date plus
every entry inside the retention window; older non-boundary entries
are discarded. The operation is lossy and runs only on request.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Mapping

from core.constants import DEFAULT_AUDIT_CAP, DEFAULT_RETENTION_DAYS
from core.history_series import latest_entry_per_date, sort_by_timestamp
from core.logging_config import get_logger
from core.timestamps import parse_instant
from core.types import LedgerState, MinerHistory

_LOGGER = get_logger(__name__)


def compact(
    state: LedgerState,
    retention_days: int = DEFAULT_RETENTION_DAYS,
    audit_cap: int = DEFAULT_AUDIT_CAP,
    now: datetime | None = None,
) -> LedgerState:
    """Compact price history and truncate the audit trail.

    Args:
        state: Current ledger state.
        retention_days: Intraday entries newer than this many days are kept.
        audit_cap: Number of most recent audit records kept.
        now: Reference instant for the window; now when omitted.

    Returns:
        Compacted state.
    """
    reference = parse_instant(now) if now else datetime.now(timezone.utc)
    price_history = compact_history(state.price_history, retention_days, reference)
    upload_history = state.upload_history[-audit_cap:] if audit_cap > 0 else ()
    before_entries = _count_intraday(state.price_history)
    after_entries = _count_intraday(price_history)
    _LOGGER.info(
        "history_compacted",
        retention_days=retention_days,
        audit_cap=audit_cap,
        intraday_entries_before=before_entries,
        intraday_entries_after=after_entries,
        audit_records_dropped=len(state.upload_history) - len(upload_history),
    )
    return replace(state, price_history=price_history, upload_history=upload_history)


def compact_history(
    price_history: Mapping[str, MinerHistory],
    retention_days: int,
    now: datetime,
) -> dict[str, MinerHistory]:
    """Compact every miner series against one retention cutoff.

    Args:
        price_history: Miner name to history.
        retention_days: Retention window in days.
        now: Reference instant.

    Returns:
        New history mapping.
    """
    cutoff = now - timedelta(days=retention_days)
    return {
        name: compact_series(history, cutoff) for name, history in price_history.items()
    }


def compact_series(history: MinerHistory, cutoff: datetime) -> MinerHistory:
    """Keep per-date latest entries plus everything at or after the cutoff."""
    latest = latest_entry_per_date(history.intraday)
    intraday = sort_by_timestamp(
        entry
        for entry in history.intraday
        if latest[entry.date] is entry or entry.timestamp >= cutoff
    )
    daily = tuple(latest[entry_date] for entry_date in sorted(latest))
    return MinerHistory(daily=daily, intraday=intraday)


def _count_intraday(price_history: Mapping[str, MinerHistory]) -> int:
    return sum(len(history.intraday) for history in price_history.values())
