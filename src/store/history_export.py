"""Ledger export writers.

This module writes the full ledger as a JSON document, the snapshot
miners lacking efficiency data as CSV, and the flattened price history
as a Parquet table for analysis tooling.
"""

from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Sequence

from core.constants import STORAGE_SCHEMA_VERSION
from core.errors import LedgerDependencyError, LedgerStoreError
from core.timestamps import format_instant
from core.types import LedgerState, MinerHistory, MinerRecord
from store.state_codec import (
    audit_record_to_payload,
    miner_to_payload,
    price_history_to_payload,
    specs_to_payload,
)
from transforms.price_metrics import miners_without_efficiency

MISSING_EFFICIENCY_COLUMNS = ("name", "hashrate_th", "price", "daily_earnings", "power_w")
HISTORY_TABLE_COLUMNS = (
    "name",
    "date",
    "timestamp",
    "upload_id",
    "price",
    "hashrate",
    "daily_earnings",
    "efficiency",
    "power_consumption",
)


def export_json(state: LedgerState, output_path: Path) -> Path:
    """Write the full ledger, audit trail included, as one JSON document.

    Args:
        state: Ledger state to export.
        output_path: Destination file.

    Returns:
        Written path.

    Raises:
        LedgerStoreError: If the file cannot be written.
    """
    payload = {
        "version": STORAGE_SCHEMA_VERSION,
        "exported_at": format_instant(datetime.now(timezone.utc)),
        "miners": [miner_to_payload(miner) for miner in state.miners],
        "price_history": price_history_to_payload(state.price_history),
        "known_miners": sorted(state.known_miners),
        "miner_specs": specs_to_payload(state.miner_specs),
        "max_prices": dict(state.max_prices),
        "previous_prices": dict(state.previous_prices),
        "upload_history": [audit_record_to_payload(record) for record in state.upload_history],
    }
    _write_text(output_path, json.dumps(payload, indent=2, sort_keys=True) + "\n")
    return output_path


def export_missing_efficiency_csv(miners: Sequence[MinerRecord], output_path: Path) -> Path:
    """Write snapshot miners without efficiency data as CSV.

    Args:
        miners: Snapshot miners.
        output_path: Destination file.

    Returns:
        Written path.

    Raises:
        LedgerStoreError: If the file cannot be written.
    """
    _ensure_parent(output_path)
    try:
        with output_path.open("w", encoding="utf-8", newline="") as output_file:
            writer = csv.writer(output_file)
            writer.writerow(MISSING_EFFICIENCY_COLUMNS)
            for miner in miners_without_efficiency(miners):
                writer.writerow(
                    (
                        miner.name,
                        miner.hashrate,
                        miner.price,
                        miner.daily_earnings,
                        "" if miner.power_consumption is None else miner.power_consumption,
                    )
                )
    except OSError as error:
        raise LedgerStoreError(
            f"Failed to write export at {output_path}: {error}. "
            "Check write permissions and available disk space."
        ) from error
    return output_path


def export_history_parquet(price_history: Mapping[str, MinerHistory], output_path: Path) -> Path:
    """Write every intraday entry as a row of a Parquet table.

    Args:
        price_history: History map to flatten.
        output_path: Destination file.

    Returns:
        Written path.

    Raises:
        LedgerDependencyError: If pyarrow is missing.
        LedgerStoreError: If the table cannot be written.
    """
    try:
        import pyarrow as pa
        import pyarrow.parquet as pq
    except ImportError as error:
        raise LedgerDependencyError(
            "Parquet export requires pyarrow, but it is not installed. "
            "Install pyarrow or export with --format json."
        ) from error
    columns = history_columns(price_history)
    table = pa.table(columns)
    _ensure_parent(output_path)
    try:
        pq.write_table(table, str(output_path))
    except (OSError, pa.ArrowException) as error:
        raise LedgerStoreError(
            f"Failed to write Parquet export at {output_path}: {error}. "
            "Check write permissions and available disk space."
        ) from error
    return output_path


def history_columns(price_history: Mapping[str, MinerHistory]) -> dict[str, list[object]]:
    """Flatten intraday series into column lists, one row per entry."""
    columns: dict[str, list[object]] = {column: [] for column in HISTORY_TABLE_COLUMNS}
    for name in sorted(price_history):
        for entry in price_history[name].intraday:
            columns["name"].append(name)
            columns["date"].append(entry.date.isoformat())
            columns["timestamp"].append(format_instant(entry.timestamp))
            columns["upload_id"].append(entry.upload_id)
            columns["price"].append(entry.price)
            columns["hashrate"].append(entry.hashrate)
            columns["daily_earnings"].append(entry.daily_earnings)
            columns["efficiency"].append(entry.efficiency)
            columns["power_consumption"].append(entry.power_consumption)
    return columns


def _write_text(output_path: Path, text: str) -> None:
    _ensure_parent(output_path)
    try:
        output_path.write_text(text, encoding="utf-8")
    except OSError as error:
        raise LedgerStoreError(
            f"Failed to write export at {output_path}: {error}. "
            "Check write permissions and available disk space."
        ) from error


def _ensure_parent(output_path: Path) -> None:
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise LedgerStoreError(
            f"Failed to create export directory {output_path.parent}: {error}."
        ) from error
