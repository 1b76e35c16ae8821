"""Python SDK for ledger operations.

This module exposes the single-writer client that stages uploads,
applies confirmed batches, rolls back, compacts, and exports, keeping
the persisted store in step with the published in-memory state.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Iterator, Literal, Mapping, Sequence

from core.config import LedgerConfig
from core.constants import DEFAULT_MERGE_STRATEGY
from core.errors import LedgerBusyError, LedgerValidationError
from core.types import (
    AuditRecord,
    LedgerState,
    MergeStrategy,
    MinerRecord,
    PriceChanges,
    SnapshotStats,
    StagedUpload,
    UploadPreview,
)
from ingest.ingest_engine import ingest
from ingest.power_reference import load_power_table
from ingest.row_normalizer import normalize_rows
from ingest.row_reader import read_upload_rows
from ingest.upload_preview import preview_ingestion, validate_strategy
from store.history_export import (
    export_history_parquet,
    export_json,
    export_missing_efficiency_csv,
)
from store.kv_store import FileKeyValueStore, KeyValueStore
from store.ledger_store import LedgerStore
from store.rollback import rollback
from transforms.history_compaction import compact
from transforms.power_backfill import apply_power_reference, recalculate_efficiency
from transforms.price_metrics import calculate_price_changes, summarize_snapshot

ExportFormat = Literal["json", "parquet", "missing-efficiency"]
EXPORT_FORMATS = ("json", "parquet", "missing-efficiency")


class LedgerClient:
    """Primary SDK entry point and single writer of the ledger state.

    Mutating operations hold an exclusive lock for their whole duration.
    A call made while another is running fails with ``LedgerBusyError``
    instead of waiting.
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        kv_store: KeyValueStore | None = None,
    ) -> None:
        """Create SDK client, migrating legacy history before the first load.

        Args:
            config: Optional runtime configuration.
            kv_store: Optional store; a file store under the data root
                when omitted.

        Raises:
            LedgerConfigError: If environment configuration is invalid.
            LedgerStoreError: If the store cannot be read or migrated.
        """
        self._config = config or LedgerConfig.from_env()
        self._kv_store = kv_store or FileKeyValueStore(
            self._config.data_root,
            self._config.store_quota_bytes,
        )
        self._store = LedgerStore(self._kv_store)
        self._lock = threading.Lock()
        self._power_table: dict[str, int] | None = None
        self._store.run_legacy_migration()
        self._state = self._store.load_state()

    @property
    def config(self) -> LedgerConfig:
        """Return runtime configuration."""
        return self._config

    @property
    def state(self) -> LedgerState:
        """Return the currently published state."""
        return self._state

    @property
    def busy(self) -> bool:
        """Return whether a mutating operation is running."""
        return self._lock.locked()

    def with_data_root(self, data_root: str) -> "LedgerClient":
        """Clone the client with a different local data root.

        Args:
            data_root: New data root path.

        Returns:
            New SDK client instance.
        """
        resolved_root = Path(data_root).expanduser().resolve()
        return LedgerClient(replace(self._config, data_root=resolved_root))

    def power_table(self) -> dict[str, int]:
        """Return the power reference table, loading any override once."""
        if self._power_table is None:
            self._power_table = load_power_table(self._config.power_table_path)
        return self._power_table

    def stage_upload(
        self,
        source_path: Path,
        data_date: date,
        strategy: MergeStrategy = DEFAULT_MERGE_STRATEGY,
    ) -> StagedUpload:
        """Read, normalize, and preview an upload file without mutating state.

        Args:
            source_path: Upload file.
            data_date: Calendar date the prices are for.
            strategy: Merge strategy the upload would use.

        Returns:
            Staged upload carrying records and preview.

        Raises:
            LedgerParseError: If the file cannot be read.
            LedgerValidationError: If the strategy is unknown or no row is valid.
        """
        validate_strategy(strategy)
        rows = read_upload_rows(source_path, self._config.max_upload_bytes)
        records = normalize_rows(rows, data_date, power_table=self.power_table())
        if not records:
            raise LedgerValidationError(
                f"No valid miner data found in {source_path.name}. "
                "Check that rows carry a name, a positive hashrate, and a positive price."
            )
        return StagedUpload(
            file_name=source_path.name,
            data_date=data_date,
            strategy=strategy,
            records=tuple(records),
            preview=self.preview(records, strategy),
        )

    def preview(
        self,
        records: Sequence[MinerRecord],
        strategy: MergeStrategy = DEFAULT_MERGE_STRATEGY,
    ) -> UploadPreview:
        """Classify records against the current snapshot.

        Args:
            records: Normalized batch.
            strategy: Merge strategy the upload would use.

        Returns:
            Upload preview.
        """
        return preview_ingestion(records, self._state.miners, strategy)

    def confirm_upload(self, staged: StagedUpload) -> AuditRecord:
        """Apply a staged upload the operator confirmed.

        Args:
            staged: Result of ``stage_upload``.

        Returns:
            Appended audit record.

        Raises:
            LedgerValidationError: If the staged preview holds errors.
            LedgerBusyError: If another operation is running.
            LedgerStoreError: If persisting the new state fails.
        """
        if staged.preview.has_errors:
            raise LedgerValidationError(
                f"Cannot confirm upload '{staged.file_name}': "
                f"preview reported {len(staged.preview.errors)} error(s). "
                "Fix the file and stage it again."
            )
        return self.ingest_records(
            staged.records,
            staged.file_name,
            staged.strategy,
            staged.data_date,
        )

    def ingest_records(
        self,
        records: Sequence[MinerRecord],
        file_name: str,
        strategy: MergeStrategy,
        data_date: date,
        ingested_at: datetime | None = None,
    ) -> AuditRecord:
        """Ingest a normalized batch and persist the next state.

        Args:
            records: Normalized batch.
            file_name: Source file name for the audit trail.
            strategy: Merge strategy.
            data_date: Calendar date the prices are for.
            ingested_at: Optional ingestion instant.

        Returns:
            Appended audit record.

        Raises:
            LedgerValidationError: If the batch is invalid.
            LedgerBusyError: If another operation is running.
            LedgerStoreError: If persisting the new state fails.
        """
        with self._exclusive("ingest"):
            result = ingest(records, file_name, strategy, data_date, self._state, ingested_at)
            self._publish(result.state)
            return result.audit_record

    def rollback(self, audit_id: str) -> LedgerState:
        """Restore the state captured before an upload.

        Args:
            audit_id: Audit record id.

        Returns:
            Restored state.

        Raises:
            LedgerNotFoundError: If the record or its snapshot is gone.
            LedgerBusyError: If another operation is running.
            LedgerStoreError: If persisting the restored state fails.
        """
        with self._exclusive("rollback"):
            restored = rollback(audit_id, self._state)
            self._publish(restored)
            return restored

    def compact(
        self,
        retention_days: int | None = None,
        audit_cap: int | None = None,
        now: datetime | None = None,
    ) -> LedgerState:
        """Compact history and truncate the audit trail.

        Args:
            retention_days: Window override; configured value when omitted.
            audit_cap: Audit cap override; configured value when omitted.
            now: Optional reference instant.

        Returns:
            Compacted state.
        """
        with self._exclusive("compact"):
            compacted = compact(
                self._state,
                retention_days=(
                    self._config.retention_days if retention_days is None else retention_days
                ),
                audit_cap=self._config.audit_cap if audit_cap is None else audit_cap,
                now=now,
            )
            self._publish(compacted)
            return compacted

    def apply_power_reference(self) -> int:
        """Backfill power and efficiency from the reference table.

        Returns:
            Number of snapshot miners changed.
        """
        with self._exclusive("apply_power_reference"):
            next_state, changed_count = apply_power_reference(self._state, self.power_table())
            if changed_count:
                self._publish(next_state)
            return changed_count

    def recalculate_efficiency(self) -> int:
        """Recompute efficiency from power and hashrate for every snapshot miner.

        Returns:
            Number of snapshot miners changed.
        """
        with self._exclusive("recalculate_efficiency"):
            next_state, changed_count = recalculate_efficiency(self._state, self.power_table())
            if changed_count:
                self._publish(next_state)
            return changed_count

    def migrate_legacy(self, today: date | None = None) -> bool:
        """Run the one-time legacy history migration and reload state.

        Args:
            today: Optional date for entries lacking one.

        Returns:
            Whether stored history was rewritten.
        """
        with self._exclusive("migrate_legacy"):
            migrated = self._store.run_legacy_migration(today=today)
            if migrated:
                self._state = self._store.load_state()
            return migrated

    def clear_all(self) -> None:
        """Remove all persisted data and reset to the empty state."""
        with self._exclusive("clear_all"):
            self._store.clear_all()
            self._state = LedgerState()

    def list_uploads(self) -> tuple[AuditRecord, ...]:
        """Return retained audit records, newest last."""
        return self._state.upload_history

    def price_changes(self) -> dict[str, PriceChanges]:
        """Compute price movement for every snapshot miner.

        Returns:
            Mapping from miner name to price changes.
        """
        state = self._state
        return {
            miner.name: calculate_price_changes(miner, state.max_prices, state.previous_prices)
            for miner in state.miners
        }

    def stats(self) -> SnapshotStats:
        """Return aggregate statistics over the snapshot."""
        return summarize_snapshot(self._state.miners)

    def export(self, output_path: Path, export_format: ExportFormat = "json") -> Path:
        """Export the ledger in the requested format.

        Args:
            output_path: Destination file.
            export_format: One of ``json``, ``parquet``, ``missing-efficiency``.

        Returns:
            Written path.

        Raises:
            LedgerValidationError: If the format is unknown.
            LedgerDependencyError: If the format needs a missing library.
            LedgerStoreError: If the file cannot be written.
        """
        state = self._state
        writers: Mapping[str, Callable[[], Path]] = {
            "json": lambda: export_json(state, output_path),
            "parquet": lambda: export_history_parquet(state.price_history, output_path),
            "missing-efficiency": lambda: export_missing_efficiency_csv(state.miners, output_path),
        }
        writer = writers.get(export_format)
        if writer is None:
            raise LedgerValidationError(
                f"Unsupported export format '{export_format}'. "
                f"Use one of: {', '.join(EXPORT_FORMATS)}."
            )
        return writer()

    def storage_size_bytes(self) -> int:
        """Return the approximate size of persisted data."""
        return self._store.size_bytes()

    def last_saved(self) -> datetime | None:
        """Return the instant of the last successful save."""
        return self._store.last_saved()

    @contextmanager
    def _exclusive(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise LedgerBusyError(
                f"Cannot run {operation}: another ledger operation is in progress. "
                "Wait for it to finish and retry."
            )
        try:
            yield
        finally:
            self._lock.release()

    def _publish(self, state: LedgerState) -> None:
        self._state = state
        self._store.save_state(state)
