"""Upload ingestion engine.

This module applies an operator-confirmed batch to the ledger state.
It updates history, specs, known names, and price aggregates, merges
the snapshot list per strategy, and appends an audit record holding
the state captured before any change.

All work happens on fresh containers; the input state is never
modified, so a failure leaves the caller's state untouched.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Sequence

from core.errors import LedgerValidationError
from core.history_series import append_history_entry
from core.logging_config import get_logger
from core.timestamps import parse_instant
from core.types import (
    AuditRecord,
    HistoryEntry,
    IngestResult,
    LedgerState,
    MergeStrategy,
    MinerHistory,
    MinerRecord,
    MinerSpec,
)
from ingest.upload_preview import preview_ingestion, validate_strategy

_LOGGER = get_logger(__name__)


def ingest(
    batch: Sequence[MinerRecord],
    file_name: str,
    strategy: MergeStrategy,
    data_date: date,
    state: LedgerState,
    ingested_at: datetime | None = None,
) -> IngestResult:
    """Apply a confirmed batch and return the next state with its audit record.

    Args:
        batch: Normalized records the operator confirmed.
        file_name: Source file name for the audit trail.
        strategy: Merge strategy for the snapshot list.
        data_date: Operator-specified date of the uploaded prices.
        state: Current ledger state.
        ingested_at: Ingestion instant; now when omitted.

    Returns:
        Next state and the appended audit record.

    Raises:
        LedgerValidationError: If the batch is empty, the strategy is
            unknown, or any record fails required-field checks.
    """
    validate_strategy(strategy)
    if not batch:
        raise LedgerValidationError(
            f"Cannot ingest '{file_name}': the batch contains no miner records. "
            "Upload a file with at least one valid row."
        )
    preview = preview_ingestion(batch, state.miners, strategy)
    if preview.has_errors:
        raise LedgerValidationError(
            f"Cannot ingest '{file_name}': {len(preview.errors)} invalid record(s). "
            f"First error: {preview.errors[0]}"
        )
    instant = parse_instant(ingested_at) if ingested_at else datetime.now(timezone.utc)
    batch = [
        replace(record, upload_timestamp=parse_instant(record.upload_timestamp))
        for record in batch
    ]
    prior_snapshot = state.snapshot()
    price_history = dict(state.price_history)
    known_miners = set(state.known_miners)
    miner_specs = dict(state.miner_specs)
    max_prices = dict(state.max_prices)
    previous_prices = dict(state.previous_prices)
    truly_new_names: set[str] = set()
    for record in batch:
        if record.name not in prior_snapshot.known_miners:
            truly_new_names.add(record.name)
        known_miners.add(record.name)
        miner_specs[record.name] = MinerSpec(
            power_consumption=record.power_consumption,
            efficiency=record.efficiency,
            algorithm=record.algorithm,
        )
        history = price_history.get(record.name, MinerHistory())
        price_history[record.name] = append_history_entry(history, history_entry_from_record(record))
        max_prices[record.name] = max(max_prices.get(record.name, 0.0), record.price)
    miners = apply_merge_strategy(state.miners, batch, strategy, previous_prices)
    audit_record = AuditRecord(
        audit_id=str(uuid.uuid4()),
        date=data_date,
        timestamp=instant,
        file_name=file_name,
        miner_count=len(batch),
        new_miner_count=len(truly_new_names),
        updated_count=preview.summary.updated_count,
        strategy=strategy,
        snapshot=prior_snapshot,
    )
    next_state = LedgerState(
        miners=miners,
        price_history=price_history,
        known_miners=frozenset(known_miners),
        miner_specs=miner_specs,
        max_prices=max_prices,
        previous_prices=previous_prices,
        upload_history=state.upload_history + (audit_record,),
    )
    _LOGGER.info(
        "ingest_completed",
        audit_id=audit_record.audit_id,
        file_name=file_name,
        strategy=strategy,
        data_date=data_date.isoformat(),
        miner_count=audit_record.miner_count,
        new_miner_count=audit_record.new_miner_count,
        updated_count=audit_record.updated_count,
        snapshot_size=len(miners),
    )
    return IngestResult(state=next_state, audit_record=audit_record)


def apply_merge_strategy(
    current: Sequence[MinerRecord],
    batch: Sequence[MinerRecord],
    strategy: MergeStrategy,
    previous_prices: dict[str, float],
) -> tuple[MinerRecord, ...]:
    """Build the next snapshot list and record overwritten prices.

    ``replace`` keeps only batch names; ``merge`` and ``append`` both
    overwrite existing names in place and append unseen names. A name
    repeated in the batch keeps its first position and its last value.

    Args:
        current: Snapshot list before the upload.
        batch: Confirmed records.
        strategy: Merge strategy.
        previous_prices: Working copy updated in place with overwritten prices.

    Returns:
        Next snapshot list.
    """
    if strategy == "replace":
        old_by_name = {miner.name: miner for miner in current}
        replaced: dict[str, MinerRecord] = {}
        for record in batch:
            old_miner = old_by_name.get(record.name)
            if old_miner is not None:
                previous_prices[record.name] = old_miner.price
            else:
                previous_prices.pop(record.name, None)
            replaced[record.name] = record
        return tuple(replaced.values())
    merged = list(current)
    positions = {miner.name: index for index, miner in enumerate(merged)}
    for record in batch:
        index = positions.get(record.name)
        if index is None:
            positions[record.name] = len(merged)
            merged.append(record)
            previous_prices.pop(record.name, None)
            continue
        previous_prices[record.name] = merged[index].price
        merged[index] = _overlay_record(merged[index], record)
    return tuple(merged)


def history_entry_from_record(record: MinerRecord) -> HistoryEntry:
    """Project an ingested record onto a time-series entry."""
    return HistoryEntry(
        date=record.date,
        timestamp=record.upload_timestamp,
        upload_id=record.upload_id,
        price=record.price,
        hashrate=record.hashrate,
        daily_earnings=record.daily_earnings,
        efficiency=record.efficiency,
        power_consumption=record.power_consumption,
    )


def _overlay_record(existing: MinerRecord, incoming: MinerRecord) -> MinerRecord:
    """Overwrite an existing miner, keeping descriptive fields the upload lacks."""
    return replace(
        incoming,
        algorithm=incoming.algorithm or existing.algorithm,
        image_url=incoming.image_url or existing.image_url,
    )
