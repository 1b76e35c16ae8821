"""Shared typed models.

This module defines immutable data models used by the ingest, store,
and transform layers to keep interfaces explicit and stable.

Sequences are tuples and entries are frozen, so copying the outer
mappings of a ``LedgerState`` yields a value that shares no mutable
structure with the original.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Mapping

MergeStrategy = Literal["replace", "merge", "append"]


@dataclass(frozen=True)
class MinerRecord:
    """Canonical priced miner record produced from one upload row.

    Attributes:
        name: Unique miner name.
        hashrate: Hashrate in TH/s.
        price: Price in currency units.
        daily_earnings: Reported daily earnings.
        power_consumption: Rated power draw in watts, when known.
        efficiency: Watts per TH/s, when known.
        algorithm: Mining algorithm label from rich rows.
        image_url: Product image URL from rich rows.
        date: Calendar date the price is for.
        upload_timestamp: Instant the batch was ingested.
        upload_id: Globally unique row identifier.
    """

    name: str
    hashrate: float
    price: float
    date: date
    upload_timestamp: datetime
    upload_id: str
    daily_earnings: float = 0.0
    power_consumption: int | None = None
    efficiency: float | None = None
    algorithm: str | None = None
    image_url: str | None = None


@dataclass(frozen=True)
class HistoryEntry:
    """One observed price point in a miner time series."""

    date: date
    timestamp: datetime
    upload_id: str
    price: float
    hashrate: float
    daily_earnings: float = 0.0
    efficiency: float | None = None
    power_consumption: int | None = None


@dataclass(frozen=True)
class MinerHistory:
    """Daily and intraday views of one miner time series.

    Attributes:
        daily: Latest entry per date, ascending by date.
        intraday: Every ingested entry, ascending by timestamp.
    """

    daily: tuple[HistoryEntry, ...] = ()
    intraday: tuple[HistoryEntry, ...] = ()


@dataclass(frozen=True)
class MinerSpec:
    """Most recently ingested derived specs for one miner."""

    power_consumption: int | None = None
    efficiency: float | None = None
    algorithm: str | None = None


@dataclass(frozen=True)
class LedgerSnapshot:
    """Full value copy of the mutable ledger maps.

    Embedded in audit records as the state immediately before an upload.
    """

    miners: tuple[MinerRecord, ...] = ()
    price_history: Mapping[str, MinerHistory] = field(default_factory=dict)
    known_miners: frozenset[str] = frozenset()
    miner_specs: Mapping[str, MinerSpec] = field(default_factory=dict)
    max_prices: Mapping[str, float] = field(default_factory=dict)
    previous_prices: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class AuditRecord:
    """Immutable upload log entry enabling rollback.

    Attributes:
        audit_id: Unique record id.
        date: Operator-specified data date of the upload.
        timestamp: Ingestion instant.
        file_name: Source file name.
        miner_count: Number of records in the batch.
        new_miner_count: Records whose name was never seen before.
        updated_count: Updated count from the upload preview.
        strategy: Merge strategy used.
        snapshot: Ledger state captured before the upload, if retained.
    """

    audit_id: str
    date: date
    timestamp: datetime
    file_name: str
    miner_count: int
    new_miner_count: int
    updated_count: int
    strategy: MergeStrategy
    snapshot: LedgerSnapshot | None


@dataclass(frozen=True)
class LedgerState:
    """Complete engine state threaded through every operation."""

    miners: tuple[MinerRecord, ...] = ()
    price_history: Mapping[str, MinerHistory] = field(default_factory=dict)
    known_miners: frozenset[str] = frozenset()
    miner_specs: Mapping[str, MinerSpec] = field(default_factory=dict)
    max_prices: Mapping[str, float] = field(default_factory=dict)
    previous_prices: Mapping[str, float] = field(default_factory=dict)
    upload_history: tuple[AuditRecord, ...] = ()

    def snapshot(self) -> LedgerSnapshot:
        """Return an independent value copy of the mutable maps.

        Returns:
            Snapshot sharing no mutable containers with this state.
        """
        return LedgerSnapshot(
            miners=tuple(self.miners),
            price_history=dict(self.price_history),
            known_miners=frozenset(self.known_miners),
            miner_specs=dict(self.miner_specs),
            max_prices=dict(self.max_prices),
            previous_prices=dict(self.previous_prices),
        )


@dataclass(frozen=True)
class PriceUpdate:
    """Preview row for an existing miner whose price or hashrate moved."""

    name: str
    old_price: float
    new_price: float
    change_pct: float
    old_hashrate: float
    new_hashrate: float
    efficiency: float | None


@dataclass(frozen=True)
class PreviewSummary:
    """Category counts for an upload preview."""

    new_count: int = 0
    updated_count: int = 0
    unchanged_count: int = 0
    removed_count: int = 0


@dataclass(frozen=True)
class UploadPreview:
    """Read-only classification of a batch against the current snapshot.

    Attributes:
        new: Records whose name is absent from the snapshot.
        updated: Price/hashrate changes for existing names.
        unchanged: Names whose values did not move.
        removed: Snapshot names a ``replace`` upload would drop.
        errors: Required-field violations; any entry blocks confirmation.
        warnings: Non-blocking observations about the batch.
        summary: Category counts.
    """

    new: tuple[MinerRecord, ...] = ()
    updated: tuple[PriceUpdate, ...] = ()
    unchanged: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    summary: PreviewSummary = PreviewSummary()

    @property
    def has_errors(self) -> bool:
        """Return whether confirmation must be blocked."""
        return bool(self.errors)


@dataclass(frozen=True)
class IngestResult:
    """Cohesive result of one ingestion: next state plus its audit record."""

    state: LedgerState
    audit_record: AuditRecord


@dataclass(frozen=True)
class StagedUpload:
    """Parsed and previewed upload awaiting operator confirmation."""

    file_name: str
    data_date: date
    strategy: MergeStrategy
    records: tuple[MinerRecord, ...]
    preview: UploadPreview


@dataclass(frozen=True)
class PriceChanges:
    """Relative price movement of a snapshot miner.

    Attributes:
        change_from_max: Percent below (or at) the highest ingested price.
        change_from_previous: Percent change from the overwritten price,
            or ``None`` when there is no distinct previous price.
    """

    change_from_max: float
    change_from_previous: float | None


@dataclass(frozen=True)
class EfficiencyBucket:
    """Count of snapshot miners in one efficiency range."""

    label: str
    count: int


@dataclass(frozen=True)
class SnapshotStats:
    """Aggregate statistics over the current snapshot."""

    total_miners: int
    efficient_miners: int
    without_efficiency: int
    avg_price: float
    avg_hashrate: float
    avg_efficiency: float
    efficiency_distribution: tuple[EfficiencyBucket, ...]
