"""Core constants used across minerledger modules.

This module centralizes storage keys, defaults, and format limits.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".minerledger")
STORAGE_SCHEMA_VERSION = "1.1.0"
STORAGE_KEY_PREFIX = "minerledger_"
STORAGE_KEY_MINERS = "minerledger_miners"
STORAGE_KEY_PRICE_HISTORY = "minerledger_price_history"
STORAGE_KEY_KNOWN_MINERS = "minerledger_known_miners"
STORAGE_KEY_MINER_SPECS = "minerledger_miner_specs"
STORAGE_KEY_UPLOAD_HISTORY = "minerledger_upload_history"
STORAGE_KEY_MAX_PRICES = "minerledger_max_prices"
STORAGE_KEY_PREVIOUS_PRICES = "minerledger_previous_prices"
STORAGE_KEY_VERSION = "minerledger_version"
STORAGE_KEY_LAST_SAVED = "minerledger_last_saved"
STORAGE_KEY_MIGRATION_DONE = "minerledger_data_migration_v2_timestamp_and_intraday"
ALL_STORAGE_KEYS = (
    STORAGE_KEY_MINERS,
    STORAGE_KEY_PRICE_HISTORY,
    STORAGE_KEY_KNOWN_MINERS,
    STORAGE_KEY_MINER_SPECS,
    STORAGE_KEY_UPLOAD_HISTORY,
    STORAGE_KEY_MAX_PRICES,
    STORAGE_KEY_PREVIOUS_PRICES,
    STORAGE_KEY_VERSION,
    STORAGE_KEY_LAST_SAVED,
    STORAGE_KEY_MIGRATION_DONE,
)
KV_FILE_SUFFIX = ".json"
DEFAULT_RETENTION_DAYS = 30
DEFAULT_AUDIT_CAP = 10
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MERGE_STRATEGIES = ("replace", "merge", "append")
DEFAULT_MERGE_STRATEGY = "merge"
SUPPORTED_DELIMITED_EXTENSIONS = (".csv", ".txt")
SUPPORTED_EXCEL_EXTENSIONS = (".xlsx", ".xls")
SUPPORTED_UPLOAD_EXTENSIONS = SUPPORTED_DELIMITED_EXTENSIONS + SUPPORTED_EXCEL_EXTENSIONS
GIGAHASH_PER_TERAHASH = 1000.0
UNCHANGED_PRICE_TOLERANCE_PCT = 0.01
LEGACY_DEFAULT_TIME = "12:00:00"
LEGACY_UPLOAD_ID_PREFIX = "legacy_"
EFFICIENT_THRESHOLD_W_PER_TH = 20.0
EFFICIENCY_BUCKETS = (
    ("< 15 J/TH", 15.0),
    ("15-20 J/TH", 20.0),
    ("20-25 J/TH", 25.0),
    ("25-30 J/TH", 30.0),
    ("> 30 J/TH", float("inf")),
)
