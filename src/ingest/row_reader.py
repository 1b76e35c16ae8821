"""Upload file readers.

This module loads raw rows from CSV/TXT and Excel uploads.
It only tokenizes cells; interpretation belongs to the normalizer.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

from core.constants import (
    DEFAULT_MAX_UPLOAD_BYTES,
    SUPPORTED_DELIMITED_EXTENSIONS,
    SUPPORTED_UPLOAD_EXTENSIONS,
)
from core.errors import LedgerDependencyError, LedgerParseError


def read_upload_rows(
    source_path: Path,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> list[list[object]]:
    """Load ordered raw rows from an upload file.

    Args:
        source_path: CSV, TXT, XLSX, or XLS file.
        max_bytes: Largest accepted file size.

    Returns:
        Rows of loosely typed cell values, in file order.

    Raises:
        LedgerParseError: If the file is missing, too large, of an
            unsupported type, or unreadable.
        LedgerDependencyError: If Excel support libraries are missing.
    """
    if not source_path.is_file():
        raise LedgerParseError(
            f"Failed to read upload at {source_path}: file does not exist. "
            "Provide an existing .csv, .txt, .xlsx, or .xls file."
        )
    suffix = source_path.suffix.lower()
    if suffix not in SUPPORTED_UPLOAD_EXTENSIONS:
        raise LedgerParseError(
            f"Unsupported upload type '{suffix or source_path.name}'. "
            f"Supported extensions: {', '.join(SUPPORTED_UPLOAD_EXTENSIONS)}."
        )
    size_bytes = source_path.stat().st_size
    if size_bytes > max_bytes:
        raise LedgerParseError(
            f"Upload {source_path.name} is too large ({size_bytes} bytes). "
            f"Upload files smaller than {max_bytes} bytes."
        )
    if suffix in SUPPORTED_DELIMITED_EXTENSIONS:
        return _read_delimited_rows(source_path)
    return _read_excel_rows(source_path)


def _read_delimited_rows(source_path: Path) -> list[list[object]]:
    """Read comma-delimited rows, skipping fully blank lines.

    Args:
        source_path: CSV or TXT file.

    Returns:
        Rows of string cells.

    Raises:
        LedgerParseError: If the file cannot be decoded or tokenized.
    """
    try:
        with source_path.open(newline="", encoding="utf-8-sig") as source_file:
            return [
                list(row)
                for row in csv.reader(source_file)
                if any(cell.strip() for cell in row)
            ]
    except (UnicodeDecodeError, csv.Error) as error:
        raise LedgerParseError(
            f"Failed to parse {source_path.name}: {error}. "
            "Save the sheet as UTF-8 CSV and retry the upload."
        ) from error


def _read_excel_rows(source_path: Path) -> list[list[object]]:
    """Read the first worksheet of an Excel workbook.

    Args:
        source_path: XLSX or XLS file.

    Returns:
        Rows of cell values with empty cells as ``None``.

    Raises:
        LedgerDependencyError: If pandas is not installed.
        LedgerParseError: If the workbook cannot be read.
    """
    pandas = _import_pandas()
    try:
        frame = pandas.read_excel(source_path, sheet_name=0, header=None)
    except ImportError as error:
        raise LedgerDependencyError(
            f"Reading {source_path.suffix} uploads requires an Excel engine: {error}. "
            "Install openpyxl (xlsx) or xlrd (xls)."
        ) from error
    except Exception as error:
        raise LedgerParseError(
            f"Failed to read Excel file {source_path.name}: {error}. "
            "Check that the workbook is not corrupt and retry the upload."
        ) from error
    cleaned = frame.astype(object).where(frame.notna(), None)
    return [list(row) for row in cleaned.itertuples(index=False, name=None)]


def _import_pandas() -> Any:
    try:
        import pandas
    except ImportError as error:
        raise LedgerDependencyError(
            "Excel uploads require pandas, but it is not installed. "
            "Install pandas and openpyxl, or upload a CSV file instead."
        ) from error
    return pandas
