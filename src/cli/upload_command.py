"""Upload command wiring for minerledger CLI."""

from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import Any

from core.constants import DEFAULT_MERGE_STRATEGY, MERGE_STRATEGIES
from core.types import UploadPreview
from store.ledger_sdk import LedgerClient


def add_upload_command(subparsers: Any) -> None:
    """Register upload subcommand."""
    parser = subparsers.add_parser(
        "upload",
        help="Preview a price file and optionally apply it",
    )
    parser.add_argument("source", help="Upload file (.csv, .txt, .xlsx, .xls)")
    parser.add_argument(
        "--date",
        type=parse_date_argument,
        default=None,
        help="Date the prices are for, YYYY-MM-DD (default: today)",
    )
    parser.add_argument(
        "--strategy",
        choices=MERGE_STRATEGIES,
        default=DEFAULT_MERGE_STRATEGY,
        help="How the upload combines with the current miner list",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Apply the upload after printing the preview",
    )


def run_upload_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Stage an upload, print its preview, and confirm when requested."""
    staged = client.stage_upload(
        Path(args.source),
        args.date or date.today(),
        args.strategy,
    )
    for line in render_preview(staged.preview):
        print(line)
    if staged.preview.has_errors:
        return 1
    if not args.yes:
        print("status=preview_only (rerun with --yes to apply)")
        return 0
    audit_record = client.confirm_upload(staged)
    print(f"audit_id={audit_record.audit_id}")
    print(f"new_miner_count={audit_record.new_miner_count}")
    print(f"updated_count={audit_record.updated_count}")
    return 0


def render_preview(preview: UploadPreview) -> list[str]:
    """Render preview categories as printable lines."""
    summary = preview.summary
    lines = [
        f"new={summary.new_count}\tupdated={summary.updated_count}\t"
        f"unchanged={summary.unchanged_count}\tremoved={summary.removed_count}"
    ]
    lines.extend(f"+ {record.name}\t{record.price:.2f}" for record in preview.new)
    lines.extend(
        f"~ {update.name}\t{update.old_price:.2f} -> {update.new_price:.2f}\t"
        f"{update.change_pct:+.1f}%"
        for update in preview.updated
    )
    lines.extend(f"- {name}" for name in preview.removed)
    lines.extend(f"warning={warning}" for warning in preview.warnings)
    lines.extend(f"error={error}" for error in preview.errors)
    return lines


def parse_date_argument(value: str) -> date:
    """Parse an ISO date argument for argparse."""
    try:
        return date.fromisoformat(value)
    except ValueError as error:
        raise argparse.ArgumentTypeError(
            f"invalid date '{value}': expected YYYY-MM-DD"
        ) from error
