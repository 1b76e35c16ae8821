"""Legacy price-history migration.

Older stores kept each miner's history as one flat chronological list.
This module converts that payload into the daily/intraday shape:
missing dates, timestamps, and upload ids are backfilled, entries are
sorted by timestamp into ``intraday``, and ``daily`` keeps the latest
entry per date. Items already in the new shape are carried over.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any, Mapping

from core.constants import LEGACY_DEFAULT_TIME, LEGACY_UPLOAD_ID_PREFIX
from core.logging_config import get_logger
from core.timestamps import parse_day, parse_instant

_LOGGER = get_logger(__name__)

_LEGACY_KEY_NAMES = {
    "uploadId": "upload_id",
    "uploadTimestamp": "upload_timestamp",
    "dailyEarnings": "daily_earnings",
    "powerConsumption": "power_consumption",
    "imageUrl": "image_url",
}


def migrate_legacy(
    stored_history: Mapping[str, object],
    today: date | None = None,
) -> dict[str, object] | None:
    """Convert a flat legacy history payload to the daily/intraday shape.

    Args:
        stored_history: Persisted history payload, miner name to value.
        today: Date assigned to legacy entries without one; today when omitted.

    Returns:
        Migrated payload, or ``None`` when there is nothing to migrate.
    """
    if not stored_history:
        return None
    first_value = next(iter(stored_history.values()))
    if is_structured_history(first_value):
        return None
    fallback_date = today or datetime.now(timezone.utc).date()
    migrated: dict[str, object] = {}
    migrated_items = 0
    migrated_entries = 0
    for name, value in stored_history.items():
        if isinstance(value, list):
            intraday = _backfill_entries(name, value, fallback_date)
            migrated[name] = {"daily": _latest_per_date(intraday), "intraday": intraday}
            migrated_items += 1
            migrated_entries += len(intraday)
        elif is_structured_history(value):
            migrated[name] = value
        else:
            _LOGGER.warning(
                "legacy_migration_skipped_item",
                name=name,
                reason=f"unrecognized history shape {type(value).__name__}",
            )
    if migrated_items == 0:
        return None
    _LOGGER.info(
        "legacy_migration_completed",
        migrated_items=migrated_items,
        migrated_entries=migrated_entries,
    )
    return migrated


def is_structured_history(value: object) -> bool:
    """Return whether a payload value already has the daily/intraday shape."""
    return isinstance(value, dict) and "intraday" in value


def _backfill_entries(
    name: str,
    entries: list[object],
    fallback_date: date,
) -> list[dict[str, Any]]:
    """Fill date, timestamp, and upload id; return entries sorted by timestamp."""
    backfilled: list[tuple[datetime, dict[str, Any]]] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            _LOGGER.warning(
                "legacy_migration_skipped_entry",
                name=name,
                index=index,
                reason="entry is not an object",
            )
            continue
        try:
            entry_date = parse_day(entry["date"]) if entry.get("date") else fallback_date
            timestamp = parse_instant(
                entry.get("timestamp") or f"{entry_date.isoformat()}T{LEGACY_DEFAULT_TIME}"
            )
        except ValueError as error:
            _LOGGER.warning(
                "legacy_migration_skipped_entry",
                name=name,
                index=index,
                reason=str(error),
            )
            continue
        upload_id = entry.get("upload_id") or entry.get("uploadId") or _legacy_upload_id(
            entry_date, index
        )
        payload = _rename_legacy_keys(entry)
        payload.update(
            {
                "date": entry_date.isoformat(),
                "timestamp": timestamp.isoformat(),
                "upload_id": str(upload_id),
            }
        )
        backfilled.append((timestamp, payload))
    backfilled.sort(key=lambda item: item[0])
    return [payload for _, payload in backfilled]


def _rename_legacy_keys(entry: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase entry keys to persisted names; snake_case values win."""
    renamed: dict[str, Any] = {}
    for key, value in entry.items():
        target = _LEGACY_KEY_NAMES.get(key)
        if target is None:
            renamed[key] = value
        elif target not in entry:
            renamed[target] = value
    return renamed


def _latest_per_date(intraday: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Pick the last entry of each date from timestamp-sorted entries."""
    latest: dict[str, dict[str, Any]] = {}
    for entry in intraday:
        latest[entry["date"]] = entry
    return [latest[entry_date] for entry_date in sorted(latest)]


def _legacy_upload_id(entry_date: date, index: int) -> str:
    return f"{LEGACY_UPLOAD_ID_PREFIX}{entry_date.isoformat()}_{index}_{uuid.uuid4().hex[:8]}"
