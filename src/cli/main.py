"""minerledger CLI entry points.

This module exposes upload, audit, rollback, compaction, and reporting
commands. It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Sequence

from cli.export_command import add_export_command, run_export_command
from cli.upload_command import add_upload_command, run_upload_command
from core.config import LedgerConfig
from core.errors import LedgerError
from store.ledger_sdk import LedgerClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="minerledger", description="Miner price ledger CLI")
    parser.add_argument("--data-root", help="Override MINERLEDGER_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_upload_command(subparsers)
    _add_uploads_command(subparsers)
    _add_rollback_command(subparsers)
    _add_compact_command(subparsers)
    _add_miners_command(subparsers)
    _add_stats_command(subparsers)
    _add_backfill_power_command(subparsers)
    _add_recalculate_efficiency_command(subparsers)
    add_export_command(subparsers)
    _add_migrate_command(subparsers)
    _add_clear_command(subparsers)
    _add_status_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the minerledger CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    handlers: dict[str, Callable[[LedgerClient, argparse.Namespace], int]] = {
        "upload": run_upload_command,
        "uploads": _run_uploads_command,
        "rollback": _run_rollback_command,
        "compact": _run_compact_command,
        "miners": _run_miners_command,
        "stats": _run_stats_command,
        "backfill-power": _run_backfill_power_command,
        "recalculate-efficiency": _run_recalculate_efficiency_command,
        "export": run_export_command,
        "migrate": _run_migrate_command,
        "clear": _run_clear_command,
        "status": _run_status_command,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.error(f"Unsupported command: {args.command}")
        return 2
    try:
        client = _build_client(args.data_root)
        return handler(client, args)
    except LedgerError as error:
        print(f"error={error}", file=sys.stderr)
        return 1


def _build_client(data_root: str | None) -> LedgerClient:
    """Build SDK client with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Configured SDK client.
    """
    config = LedgerConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return LedgerClient(config)


def _run_uploads_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Handle uploads command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    for record in reversed(client.list_uploads()):
        print(
            f"{record.audit_id}\t"
            f"{record.date.isoformat()}\t"
            f"{record.timestamp.isoformat()}\t"
            f"{record.strategy}\t"
            f"{record.miner_count}\t"
            f"{record.new_miner_count}\t"
            f"{record.updated_count}\t"
            f"{record.file_name}\t"
            f"{'rollback' if record.snapshot is not None else '-'}"
        )
    return 0


def _run_rollback_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Handle rollback command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    restored = client.rollback(args.audit_id)
    print(f"restored_miner_count={len(restored.miners)}")
    return 0


def _run_compact_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Handle compact command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    compacted = client.compact(retention_days=args.retention_days, audit_cap=args.audit_cap)
    intraday_count = sum(len(history.intraday) for history in compacted.price_history.values())
    print(f"intraday_entries={intraday_count}")
    print(f"audit_records={len(compacted.upload_history)}")
    print(f"size_bytes={client.storage_size_bytes()}")
    return 0


def _run_miners_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Print the snapshot with price movement."""
    changes = client.price_changes()
    for miner in client.state.miners:
        change = changes[miner.name]
        from_previous = (
            f"{change.change_from_previous:+.1f}%"
            if change.change_from_previous is not None
            else "-"
        )
        efficiency = f"{miner.efficiency:.1f}" if miner.efficiency else "-"
        print(
            f"{miner.name}\t"
            f"{miner.hashrate:g}\t"
            f"{miner.price:.2f}\t"
            f"{efficiency}\t"
            f"{change.change_from_max:+.1f}%\t"
            f"{from_previous}"
        )
    return 0


def _run_stats_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Print aggregate snapshot statistics."""
    stats = client.stats()
    print(f"total_miners={stats.total_miners}")
    print(f"efficient_miners={stats.efficient_miners}")
    print(f"without_efficiency={stats.without_efficiency}")
    print(f"avg_price={stats.avg_price}")
    print(f"avg_hashrate={stats.avg_hashrate}")
    print(f"avg_efficiency={stats.avg_efficiency}")
    for bucket in stats.efficiency_distribution:
        print(f"bucket\t{bucket.label}\t{bucket.count}")
    return 0


def _run_backfill_power_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Apply the power reference table to the snapshot."""
    print(f"changed_count={client.apply_power_reference()}")
    return 0


def _run_recalculate_efficiency_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Recompute efficiency for every miner with known power."""
    print(f"changed_count={client.recalculate_efficiency()}")
    return 0


def _run_migrate_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Run the legacy history migration if it has not run yet."""
    print(f"migrated={str(client.migrate_legacy()).lower()}")
    return 0


def _run_clear_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Remove all persisted ledger data after explicit confirmation."""
    if not args.yes:
        print("error=refusing to clear without --yes", file=sys.stderr)
        return 1
    client.clear_all()
    print("cleared=true")
    return 0


def _run_status_command(client: LedgerClient, args: argparse.Namespace) -> int:
    """Print storage size, last save instant, and snapshot counts."""
    last_saved = client.last_saved()
    print(f"data_root={client.config.data_root}")
    print(f"size_bytes={client.storage_size_bytes()}")
    print(f"last_saved={last_saved.isoformat() if last_saved else '-'}")
    print(f"miners={len(client.state.miners)}")
    print(f"uploads={len(client.list_uploads())}")
    print(f"busy={str(client.busy).lower()}")
    return 0


def _add_uploads_command(subparsers: Any) -> None:
    """Register uploads subcommand."""
    subparsers.add_parser("uploads", help="List retained uploads, newest first")


def _add_rollback_command(subparsers: Any) -> None:
    """Register rollback subcommand."""
    parser = subparsers.add_parser(
        "rollback",
        help="Restore the ledger to its state before an upload",
    )
    parser.add_argument("audit_id", help="Upload id from the uploads listing")


def _add_compact_command(subparsers: Any) -> None:
    """Register compact subcommand."""
    parser = subparsers.add_parser(
        "compact",
        help="Drop old intraday history and truncate the upload log",
    )
    parser.add_argument("--retention-days", type=int, help="Intraday retention window in days")
    parser.add_argument("--audit-cap", type=int, help="Number of uploads to keep")


def _add_miners_command(subparsers: Any) -> None:
    """Register miners subcommand."""
    subparsers.add_parser("miners", help="List current miners with price changes")


def _add_stats_command(subparsers: Any) -> None:
    """Register stats subcommand."""
    subparsers.add_parser("stats", help="Show snapshot statistics")


def _add_backfill_power_command(subparsers: Any) -> None:
    """Register backfill-power subcommand."""
    subparsers.add_parser(
        "backfill-power",
        help="Fill power and efficiency from the reference table",
    )


def _add_recalculate_efficiency_command(subparsers: Any) -> None:
    """Register recalculate-efficiency subcommand."""
    subparsers.add_parser(
        "recalculate-efficiency",
        help="Recompute efficiency from power and hashrate for all miners",
    )


def _add_migrate_command(subparsers: Any) -> None:
    """Register migrate subcommand."""
    subparsers.add_parser("migrate", help="Upgrade legacy price history in place")


def _add_clear_command(subparsers: Any) -> None:
    """Register clear subcommand."""
    parser = subparsers.add_parser("clear", help="Delete all ledger data")
    parser.add_argument("--yes", action="store_true", help="Confirm deletion")


def _add_status_command(subparsers: Any) -> None:
    """Register status subcommand."""
    subparsers.add_parser("status", help="Show storage size and last save time")
