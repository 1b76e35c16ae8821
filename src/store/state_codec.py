"""JSON serialization for ledger state payloads.

This module centralizes conversion between typed ledger models and
JSON-safe dictionaries. It is reused by the ledger store, the audit
trail snapshots, and the JSON export.

Decoders are tolerant: missing optional fields fall back to empty
values so payloads written by older versions still load.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from core.errors import LedgerStoreError
from core.timestamps import format_instant, parse_day, parse_instant
from core.types import (
    AuditRecord,
    HistoryEntry,
    LedgerSnapshot,
    MinerHistory,
    MinerRecord,
    MinerSpec,
)


def encode_json(payload: object) -> bytes:
    """Encode a JSON-safe payload as UTF-8 bytes."""
    return json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")


def decode_json(raw: bytes, key: str) -> Any:
    """Decode stored bytes into a JSON payload.

    Args:
        raw: Stored bytes.
        key: Store key for error context.

    Returns:
        Parsed payload.

    Raises:
        LedgerStoreError: If bytes are not valid UTF-8 JSON.
    """
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise LedgerStoreError(
            f"Failed to parse stored value for '{key}': {error}. "
            "Restore the key from an export or clear the ledger."
        ) from error


def miner_to_payload(miner: MinerRecord) -> dict[str, object]:
    """Serialize a snapshot miner."""
    return {
        "name": miner.name,
        "hashrate": miner.hashrate,
        "price": miner.price,
        "daily_earnings": miner.daily_earnings,
        "power_consumption": miner.power_consumption,
        "efficiency": miner.efficiency,
        "algorithm": miner.algorithm,
        "image_url": miner.image_url,
        "date": miner.date.isoformat(),
        "upload_timestamp": format_instant(miner.upload_timestamp),
        "upload_id": miner.upload_id,
    }


def miner_from_payload(payload: Mapping[str, Any]) -> MinerRecord:
    """Deserialize a snapshot miner."""
    return MinerRecord(
        name=str(payload["name"]),
        hashrate=float(payload.get("hashrate", 0.0)),
        price=float(payload.get("price", 0.0)),
        date=parse_day(payload["date"]),
        upload_timestamp=parse_instant(payload["upload_timestamp"]),
        upload_id=str(payload.get("upload_id", "")),
        daily_earnings=float(payload.get("daily_earnings") or 0.0),
        power_consumption=_optional_int(payload.get("power_consumption")),
        efficiency=_optional_float(payload.get("efficiency")),
        algorithm=payload.get("algorithm") or None,
        image_url=payload.get("image_url") or None,
    )


def history_entry_to_payload(entry: HistoryEntry) -> dict[str, object]:
    """Serialize one time-series entry."""
    return {
        "date": entry.date.isoformat(),
        "timestamp": format_instant(entry.timestamp),
        "upload_id": entry.upload_id,
        "price": entry.price,
        "hashrate": entry.hashrate,
        "daily_earnings": entry.daily_earnings,
        "efficiency": entry.efficiency,
        "power_consumption": entry.power_consumption,
    }


def history_entry_from_payload(payload: Mapping[str, Any]) -> HistoryEntry:
    """Deserialize one time-series entry."""
    return HistoryEntry(
        date=parse_day(payload["date"]),
        timestamp=parse_instant(payload["timestamp"]),
        upload_id=str(payload.get("upload_id", "")),
        price=float(payload.get("price") or 0.0),
        hashrate=float(payload.get("hashrate") or 0.0),
        daily_earnings=float(payload.get("daily_earnings") or 0.0),
        efficiency=_optional_float(payload.get("efficiency")),
        power_consumption=_optional_int(payload.get("power_consumption")),
    )


def price_history_to_payload(price_history: Mapping[str, MinerHistory]) -> dict[str, object]:
    """Serialize the full history map."""
    return {
        name: {
            "daily": [history_entry_to_payload(entry) for entry in history.daily],
            "intraday": [history_entry_to_payload(entry) for entry in history.intraday],
        }
        for name, history in price_history.items()
    }


def price_history_from_payload(payload: Mapping[str, Any]) -> dict[str, MinerHistory]:
    """Deserialize the full history map.

    Entries shared between ``daily`` and ``intraday`` decode to equal values.
    """
    price_history: dict[str, MinerHistory] = {}
    for name, history_payload in payload.items():
        if not isinstance(history_payload, dict):
            raise LedgerStoreError(
                f"Invalid history payload for '{name}': expected daily/intraday object. "
                "Run the legacy migration before loading this store."
            )
        price_history[str(name)] = MinerHistory(
            daily=tuple(
                history_entry_from_payload(item) for item in history_payload.get("daily", [])
            ),
            intraday=tuple(
                history_entry_from_payload(item) for item in history_payload.get("intraday", [])
            ),
        )
    return price_history


def specs_to_payload(miner_specs: Mapping[str, MinerSpec]) -> dict[str, object]:
    """Serialize the specs map."""
    return {
        name: {
            "power_consumption": spec.power_consumption,
            "efficiency": spec.efficiency,
            "algorithm": spec.algorithm,
        }
        for name, spec in miner_specs.items()
    }


def specs_from_payload(payload: Mapping[str, Any]) -> dict[str, MinerSpec]:
    """Deserialize the specs map."""
    return {
        str(name): MinerSpec(
            power_consumption=_optional_int(spec.get("power_consumption")),
            efficiency=_optional_float(spec.get("efficiency")),
            algorithm=spec.get("algorithm") or None,
        )
        for name, spec in payload.items()
    }


def prices_from_payload(payload: Mapping[str, Any]) -> dict[str, float]:
    """Deserialize a name to price map."""
    return {str(name): float(price) for name, price in payload.items()}


def snapshot_to_payload(snapshot: LedgerSnapshot) -> dict[str, object]:
    """Serialize an audit snapshot."""
    return {
        "miners": [miner_to_payload(miner) for miner in snapshot.miners],
        "price_history": price_history_to_payload(snapshot.price_history),
        "known_miners": sorted(snapshot.known_miners),
        "miner_specs": specs_to_payload(snapshot.miner_specs),
        "max_prices": dict(snapshot.max_prices),
        "previous_prices": dict(snapshot.previous_prices),
    }


def snapshot_from_payload(payload: Mapping[str, Any]) -> LedgerSnapshot:
    """Deserialize an audit snapshot, defaulting any missing field to empty."""
    return LedgerSnapshot(
        miners=tuple(miner_from_payload(item) for item in payload.get("miners") or []),
        price_history=price_history_from_payload(payload.get("price_history") or {}),
        known_miners=frozenset(str(name) for name in payload.get("known_miners") or []),
        miner_specs=specs_from_payload(payload.get("miner_specs") or {}),
        max_prices=prices_from_payload(payload.get("max_prices") or {}),
        previous_prices=prices_from_payload(payload.get("previous_prices") or {}),
    )


def audit_record_to_payload(record: AuditRecord) -> dict[str, object]:
    """Serialize one audit record with its embedded snapshot."""
    return {
        "id": record.audit_id,
        "date": record.date.isoformat(),
        "timestamp": format_instant(record.timestamp),
        "file_name": record.file_name,
        "miner_count": record.miner_count,
        "new_miner_count": record.new_miner_count,
        "updated_count": record.updated_count,
        "strategy": record.strategy,
        "snapshot": snapshot_to_payload(record.snapshot) if record.snapshot else None,
    }


def audit_record_from_payload(payload: Mapping[str, Any]) -> AuditRecord:
    """Deserialize one audit record; a missing snapshot decodes to ``None``."""
    snapshot_payload = payload.get("snapshot")
    return AuditRecord(
        audit_id=str(payload["id"]),
        date=parse_day(payload["date"]),
        timestamp=parse_instant(payload["timestamp"]),
        file_name=str(payload.get("file_name", "")),
        miner_count=int(payload.get("miner_count", 0)),
        new_miner_count=int(payload.get("new_miner_count", 0)),
        updated_count=int(payload.get("updated_count", 0)),
        strategy=payload.get("strategy", "merge"),
        snapshot=snapshot_from_payload(snapshot_payload)
        if isinstance(snapshot_payload, dict)
        else None,
    )


def _optional_float(value: object) -> float | None:
    if value is None:
        return None
    return float(value)


def _optional_int(value: object) -> int | None:
    if value is None:
        return None
    return int(value)
