"""Export command wiring for minerledger CLI."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from store.ledger_sdk import EXPORT_FORMATS, LedgerClient


def add_export_command(subparsers: Any) -> None:
    """Register export subcommand."""
    parser = subparsers.add_parser("export", help="Export ledger data to a file")
    parser.add_argument("output", help="Destination file path")
    parser.add_argument(
        "--format",
        dest="export_format",
        choices=EXPORT_FORMATS,
        default="json",
        help="json: full ledger; parquet: intraday history; "
        "missing-efficiency: CSV of miners lacking efficiency",
    )


def run_export_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Write the requested export and print its path."""
    output_path = client.export(Path(args.output), args.export_format)
    print(output_path)
    return 0
