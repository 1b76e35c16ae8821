"""Upload row normalization.

This module turns raw spreadsheet rows into canonical miner records.
Two row layouts are supported:

* rich rows, whose first cell is a product image URL, carry text cells
  such as ``"120 TH/s"``, ``"Algo: SHA-256"``, ``"$1,999"`` and
  ``"$4.20/day"``, with optional power/efficiency at columns 8 and 9;
* flat rows carry ``name, hashrate, price, earnings, power, efficiency``
  as positional numeric cells.

Rows that lack a name, a positive hashrate, or a positive price are
dropped silently: spreadsheets routinely contain headers, blank lines,
and sold-out listings.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Mapping, Sequence

from core.constants import GIGAHASH_PER_TERAHASH
from core.logging_config import get_logger
from core.timestamps import parse_instant
from core.types import MinerRecord
from ingest.power_reference import BUILTIN_POWER_TABLE

_LOGGER = get_logger(__name__)

_HASHRATE_PATTERN = re.compile(r"(\d+\.?\d*)\s*(TH/s|GH/s)", re.IGNORECASE)
_NUMBER_PATTERN = re.compile(r"(\d+\.?\d*)")
_DOLLAR_PATTERN = re.compile(r"\$(\d+\.?\d*)")
_INTEGER_PATTERN = re.compile(r"(\d+)")
_LEADING_FLOAT_PATTERN = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")
_RICH_POWER_COLUMN = 8
_RICH_EFFICIENCY_COLUMN = 9


@dataclass(frozen=True)
class _RowFields:
    """Loosely parsed cell values before validation."""

    name: str
    hashrate: float | None
    price: float | None
    daily_earnings: float | None
    power_consumption: int | None
    efficiency: float | None
    algorithm: str | None = None
    image_url: str | None = None


def normalize_rows(
    rows: Sequence[Sequence[object] | None],
    data_date: date,
    batch_instant: datetime | None = None,
    power_table: Mapping[str, int] | None = None,
) -> list[MinerRecord]:
    """Normalize an ordered batch of raw rows.

    Args:
        rows: Raw rows from the upload reader.
        data_date: Calendar date the prices are for.
        batch_instant: Upload instant shared by every row; now when omitted.
        power_table: Name to watts table; built-in table when omitted.

    Returns:
        Valid records in row order.
    """
    instant = parse_instant(batch_instant) if batch_instant else datetime.now(timezone.utc)
    table = BUILTIN_POWER_TABLE if power_table is None else power_table
    records: list[MinerRecord] = []
    for row_index, row in enumerate(rows):
        record = normalize_row(row, data_date, instant, row_index, table)
        if record is None:
            _LOGGER.debug("row_dropped", row_index=row_index)
            continue
        records.append(record)
    return records


def normalize_row(
    row: Sequence[object] | None,
    data_date: date,
    batch_instant: datetime,
    row_index: int,
    power_table: Mapping[str, int],
) -> MinerRecord | None:
    """Normalize one raw row into a record, or ``None`` when it is unusable.

    Args:
        row: Raw cell values.
        data_date: Calendar date the price is for.
        batch_instant: Upload instant of the whole batch.
        row_index: Zero-based row position, part of the upload id.
        power_table: Name to watts table used when power is missing.

    Returns:
        Normalized record or ``None``.
    """
    if not row or len(row) < 2:
        return None
    if _is_rich_row(row):
        fields = _parse_rich_row(row)
    else:
        fields = _parse_flat_row(row)
    name = fields.name.strip()
    hashrate = fields.hashrate or 0.0
    price = fields.price or 0.0
    power = fields.power_consumption
    efficiency = fields.efficiency
    if not power and name in power_table:
        power = power_table[name]
    if efficiency is not None and efficiency <= 0:
        efficiency = None
    if power and hashrate > 0 and not efficiency:
        efficiency = power / hashrate
    if not name or hashrate <= 0 or price <= 0:
        return None
    return MinerRecord(
        name=name,
        hashrate=hashrate,
        price=price,
        date=data_date,
        upload_timestamp=batch_instant,
        upload_id=build_upload_id(data_date, batch_instant, row_index),
        daily_earnings=fields.daily_earnings or 0.0,
        power_consumption=power or None,
        efficiency=efficiency or None,
        algorithm=fields.algorithm or None,
        image_url=fields.image_url or None,
    )


def build_upload_id(data_date: date, batch_instant: datetime, row_index: int) -> str:
    """Build a row id unique across same-day repeated uploads."""
    random_suffix = uuid.uuid4().hex[:8]
    return f"{data_date.isoformat()}_{batch_instant.isoformat()}_{row_index}_{random_suffix}"


def _is_rich_row(row: Sequence[object]) -> bool:
    first_cell = row[0]
    return isinstance(first_cell, str) and "http" in first_cell


def _parse_rich_row(row: Sequence[object]) -> _RowFields:
    hashrate: float | None = None
    hashrate_match = _HASHRATE_PATTERN.search(_cell_text(row, 2).replace(",", ""))
    if hashrate_match:
        hashrate = float(hashrate_match.group(1))
        if hashrate_match.group(2).lower() == "gh/s":
            hashrate /= GIGAHASH_PER_TERAHASH
    power_match = _INTEGER_PATTERN.search(_cell_text(row, _RICH_POWER_COLUMN))
    return _RowFields(
        name=_cell_text(row, 1),
        hashrate=hashrate,
        price=_match_float(_NUMBER_PATTERN, _cell_text(row, 4)),
        daily_earnings=_match_float(_DOLLAR_PATTERN, _cell_text(row, 5)),
        power_consumption=int(power_match.group(1)) if power_match else None,
        efficiency=_match_float(_NUMBER_PATTERN, _cell_text(row, _RICH_EFFICIENCY_COLUMN)),
        algorithm=_cell_text(row, 3).replace("Algo:", "").strip(),
        image_url=str(row[0]).strip(),
    )


def _parse_flat_row(row: Sequence[object]) -> _RowFields:
    leading_power = _leading_float(_cell(row, 4))
    return _RowFields(
        name=_cell_text(row, 0),
        hashrate=_leading_float(_cell(row, 1)),
        price=_leading_float(_cell(row, 2)),
        daily_earnings=_leading_float(_cell(row, 3)),
        power_consumption=int(leading_power) if leading_power and leading_power > 0 else None,
        efficiency=_leading_float(_cell(row, 5)),
    )


def _cell(row: Sequence[object], index: int) -> object:
    return row[index] if index < len(row) else None


def _cell_text(row: Sequence[object], index: int) -> str:
    value = _cell(row, index)
    if value is None:
        return ""
    return str(value)


def _match_float(pattern: re.Pattern[str], text: str) -> float | None:
    match = pattern.search(text.replace(",", ""))
    return float(match.group(1)) if match else None


def _leading_float(value: object) -> float | None:
    """Parse the numeric prefix of a cell, tolerating unit suffixes."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if value != value else float(value)
    match = _LEADING_FLOAT_PATTERN.match(str(value).replace(",", ""))
    return float(match.group(1)) if match else None
