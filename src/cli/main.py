"""stocksync CLI entry points.
This module exposes commands for the scheduled import and unify jobs.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import Any, Sequence

from core.batching import clamp_batch_size
from core.config import SyncConfig
from core.errors import StockSyncError
from core.logging_config import configure_logging
from core.types import UnifySummary
from store.sync_sdk import SyncClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="stocksync", description="Stock archive sync CLI")
    parser.add_argument("--batch-size", type=int, help="Override STOCKSYNC_BATCH_SIZE")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_revisions_command(subparsers)
    _add_sync_command(subparsers)
    _add_import_command(subparsers)
    _add_unify_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the stocksync CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    client = _build_client(args.batch_size)
    try:
        if args.command == "revisions":
            return _run_revisions_command(client)
        if args.command == "sync":
            return _run_sync_command(client, args)
        if args.command == "import":
            return _run_import_command(client, args)
        if args.command == "unify":
            return _run_unify_command(client, args)
    except StockSyncError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    finally:
        client.close()
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(batch_size: int | None) -> SyncClient:
    """Build SDK client with optional batch-size override.

    Args:
        batch_size: Optional override value.

    Returns:
        Configured SDK client.
    """
    config = SyncConfig.from_env()
    if batch_size is not None:
        config = replace(config, batch_size=clamp_batch_size(batch_size))
    configure_logging(config.log_level)
    return SyncClient(config)


def _run_revisions_command(client: SyncClient) -> int:
    """Print pending revisions, newest first."""
    for revision in client.pending_revisions():
        print(revision)
    return 0


def _run_sync_command(client: SyncClient, args: argparse.Namespace) -> int:
    """Handle sync command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code; 1 when the run stopped on an unknown revision.
    """
    report = client.sync()
    print(f"processed={','.join(report.processed) or '-'}")
    print(f"committed={report.committed or '-'}")
    print(f"stop_reason={report.stop_reason}")
    if report.stop_reason == "bad_revision":
        return 1
    if args.unify and report.stop_reason == "completed":
        _print_unify_summary(client.unify(drop_feeds=args.drop_feeds or None))
    return 0


def _run_import_command(client: SyncClient, args: argparse.Namespace) -> int:
    """Handle import command."""
    summary = client.import_path(Path(args.path) if args.path else None)
    print(f"files={summary.files}")
    print(f"basics={summary.basics}")
    print(f"feeds={summary.feeds}")
    return 0


def _run_unify_command(client: SyncClient, args: argparse.Namespace) -> int:
    """Handle unify command."""
    _print_unify_summary(client.unify(drop_feeds=args.drop_feeds or None))
    return 0


def _print_unify_summary(summary: UnifySummary) -> None:
    print(f"stocks={summary.stocks}")
    print(f"feed_collections={len(summary.feed_collections)}")
    print(f"dropped={str(summary.dropped).lower()}")


def _add_revisions_command(subparsers: Any) -> None:
    """Register revisions subcommand."""
    subparsers.add_parser("revisions", help="List archive revisions not yet imported")


def _add_sync_command(subparsers: Any) -> None:
    """Register sync subcommand."""
    parser = subparsers.add_parser("sync", help="Import every pending archive revision")
    parser.add_argument(
        "--unify",
        action="store_true",
        help="Unify stocks after all revisions were imported",
    )
    parser.add_argument(
        "--drop-feeds",
        action="store_true",
        help="Drop feed collections after unification",
    )


def _add_import_command(subparsers: Any) -> None:
    """Register import subcommand."""
    parser = subparsers.add_parser("import", help="Import JSON records from a directory")
    parser.add_argument("path", nargs="?", help="Directory of records (STOCKSYNC_IMPORT_PATH)")


def _add_unify_command(subparsers: Any) -> None:
    """Register unify subcommand."""
    parser = subparsers.add_parser("unify", help="Join basics and feeds into stock documents")
    parser.add_argument(
        "--drop-feeds",
        action="store_true",
        help="Drop feed collections after unification",
    )
