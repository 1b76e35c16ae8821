"""Public SDK surface for minerledger.

This module provides a stable import path for library users.
It re-exports the client, the pure engine operations, and typed models.
"""

from __future__ import annotations

from core.config import LedgerConfig
from core.errors import (
    LedgerBusyError,
    LedgerConfigError,
    LedgerDependencyError,
    LedgerError,
    LedgerNotFoundError,
    LedgerParseError,
    LedgerStoreError,
    LedgerValidationError,
)
from core.types import (
    AuditRecord,
    HistoryEntry,
    IngestResult,
    LedgerSnapshot,
    LedgerState,
    MinerHistory,
    MinerRecord,
    MinerSpec,
    StagedUpload,
    UploadPreview,
)
from ingest.ingest_engine import ingest
from ingest.row_normalizer import normalize_rows
from ingest.upload_preview import preview_ingestion
from store.kv_store import FileKeyValueStore, MemoryKeyValueStore
from store.ledger_sdk import LedgerClient
from store.rollback import rollback
from transforms.history_compaction import compact
from transforms.legacy_migration import migrate_legacy

__all__ = [
    "AuditRecord",
    "FileKeyValueStore",
    "HistoryEntry",
    "IngestResult",
    "LedgerBusyError",
    "LedgerClient",
    "LedgerConfig",
    "LedgerConfigError",
    "LedgerDependencyError",
    "LedgerError",
    "LedgerNotFoundError",
    "LedgerParseError",
    "LedgerSnapshot",
    "LedgerState",
    "LedgerStoreError",
    "LedgerValidationError",
    "MemoryKeyValueStore",
    "MinerHistory",
    "MinerRecord",
    "MinerSpec",
    "StagedUpload",
    "UploadPreview",
    "compact",
    "ingest",
    "migrate_legacy",
    "normalize_rows",
    "preview_ingestion",
    "rollback",
]
