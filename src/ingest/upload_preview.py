"""Upload preview classification.

This module compares a normalized batch with the current snapshot.
It classifies each record as new, updated, or unchanged without
mutating any state, so the operator can review before confirming.
"""

from __future__ import annotations

from typing import Sequence

from core.constants import MERGE_STRATEGIES, UNCHANGED_PRICE_TOLERANCE_PCT
from core.errors import LedgerValidationError
from core.types import (
    MergeStrategy,
    MinerRecord,
    PreviewSummary,
    PriceUpdate,
    UploadPreview,
)


def preview_ingestion(
    batch: Sequence[MinerRecord],
    current_snapshot: Sequence[MinerRecord],
    strategy: MergeStrategy,
) -> UploadPreview:
    """Classify a batch against the current snapshot.

    Args:
        batch: Normalized upload records.
        current_snapshot: Current snapshot miners.
        strategy: Merge strategy the operator selected.

    Returns:
        Preview with categorized records, counts, errors, and warnings.

    Raises:
        LedgerValidationError: If the strategy is unknown.
    """
    validate_strategy(strategy)
    existing_by_name = {miner.name: miner for miner in current_snapshot}
    new_records: list[MinerRecord] = []
    updated: list[PriceUpdate] = []
    unchanged: list[str] = []
    errors: list[str] = []
    for row_number, record in enumerate(batch, 1):
        record_error = record_validation_error(record, row_number)
        if record_error:
            errors.append(record_error)
            continue
        existing = existing_by_name.get(record.name)
        if existing is None:
            new_records.append(record)
            continue
        change_pct = price_change_pct(existing.price, record.price)
        if abs(change_pct) < UNCHANGED_PRICE_TOLERANCE_PCT and record.hashrate == existing.hashrate:
            unchanged.append(record.name)
            continue
        updated.append(
            PriceUpdate(
                name=record.name,
                old_price=existing.price,
                new_price=record.price,
                change_pct=round(change_pct, 1),
                old_hashrate=existing.hashrate,
                new_hashrate=record.hashrate,
                efficiency=record.efficiency,
            )
        )
    removed = _removed_names(batch, current_snapshot, strategy)
    return UploadPreview(
        new=tuple(new_records),
        updated=tuple(updated),
        unchanged=tuple(unchanged),
        removed=removed,
        errors=tuple(errors),
        warnings=_duplicate_name_warnings(batch),
        summary=PreviewSummary(
            new_count=len(new_records),
            updated_count=len(updated),
            unchanged_count=len(unchanged),
            removed_count=len(removed),
        ),
    )


def record_validation_error(record: MinerRecord, row_number: int) -> str | None:
    """Return a readable required-field violation, or ``None`` when valid."""
    if record.name and record.price > 0 and record.hashrate > 0:
        return None
    return (
        f"Row {row_number} (Name: {record.name or 'N/A'}): Missing required fields "
        "(Name, Price > 0, Hashrate > 0) or invalid values."
    )


def price_change_pct(old_price: float, new_price: float) -> float:
    """Percent change from old to new price; 0 when equal or old is 0."""
    if new_price == old_price or old_price == 0:
        return 0.0
    return (new_price - old_price) / old_price * 100


def validate_strategy(strategy: str) -> None:
    """Reject merge strategies outside replace/merge/append."""
    if strategy not in MERGE_STRATEGIES:
        raise LedgerValidationError(
            f"Unsupported merge strategy '{strategy}'. "
            f"Use one of: {', '.join(MERGE_STRATEGIES)}."
        )


def _removed_names(
    batch: Sequence[MinerRecord],
    current_snapshot: Sequence[MinerRecord],
    strategy: MergeStrategy,
) -> tuple[str, ...]:
    if strategy != "replace":
        return ()
    batch_names = {record.name for record in batch}
    return tuple(miner.name for miner in current_snapshot if miner.name not in batch_names)


def _duplicate_name_warnings(batch: Sequence[MinerRecord]) -> tuple[str, ...]:
    first_rows: dict[str, int] = {}
    warnings: list[str] = []
    for row_number, record in enumerate(batch, 1):
        if not record.name:
            continue
        if record.name in first_rows:
            warnings.append(
                f"Row {row_number} (Name: {record.name}): duplicates row "
                f"{first_rows[record.name]}; the later row wins."
            )
            continue
        first_rows[record.name] = row_number
    return tuple(warnings)
