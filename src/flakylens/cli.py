import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console

from flakylens.adapters.records import FlakyRecordManager
from flakylens.adapters.storage import SQLiteExecutionStore
from flakylens.core.errors import FlakyLensError
from flakylens.core.models import (
    ExecutionOutcome,
    ExecutionRecord,
    FlakyLensConfig,
)
from flakylens.core.orchestrator import FlakyAnalyzer
from flakylens.reporter import RichReporter

DEFAULT_DB = ".flakylens/history.db"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--db", default=DEFAULT_DB, help="Database path")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level",
    )


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT)


def record_command(
    db_path: str,
    test_id: str,
    outcome: str,
    duration_ms: int,
    dom_score: float | None = None,
    wait_failures: int = 0,
    error_message: str | None = None,
) -> None:
    config = FlakyLensConfig(db_path=Path(db_path))
    store = SQLiteExecutionStore(config)

    store.save_execution(
        ExecutionRecord(
            test_id=test_id,
            outcome=ExecutionOutcome(outcome),
            duration_ms=duration_ms,
            dom_stability_score=dom_score,
            wait_condition_failures=wait_failures,
            error_message=error_message,
            executed_at=datetime.now(timezone.utc),
        )
    )
    store.close()

    Console().print(f"Recorded {outcome} execution of {test_id}")


def analyze_command(db_path: str, test_id: str | None, workers: int) -> None:
    config = FlakyLensConfig(db_path=Path(db_path), max_workers=workers)
    store = SQLiteExecutionStore(config)
    manager = FlakyRecordManager(config)
    analyzer = FlakyAnalyzer(store, manager, config)
    reporter = RichReporter()

    if test_id:
        reporter.report_analysis(analyzer.analyze_one(test_id))
    else:
        reporter.report_batch(analyzer.analyze_all())

    store.close()
    manager.close()


def report_command(db_path: str) -> None:
    config = FlakyLensConfig(db_path=Path(db_path))
    manager = FlakyRecordManager(config)

    reporter = RichReporter()
    reporter.report(manager.list_active())

    manager.close()


def list_command(db_path: str) -> None:
    config = FlakyLensConfig(db_path=Path(db_path))
    manager = FlakyRecordManager(config)
    records = manager.list_active()

    console = Console()
    if not records:
        console.print("[green]No flaky tests detected.[/green]")
    else:
        console.print(f"Found {len(records)} flaky test(s):")
        for record in records:
            console.print(f"  - {record.test_id} ({record.flakiness_score:.1f})")

    manager.close()


def resolve_command(db_path: str, test_id: str) -> bool:
    config = FlakyLensConfig(db_path=Path(db_path))
    manager = FlakyRecordManager(config)
    found = manager.resolve(test_id)
    manager.close()

    console = Console()
    if found:
        console.print(f"[green]Marked {test_id} as resolved.[/green]")
    else:
        console.print(f"[red]No flaky record found for {test_id}.[/red]")
    return found


def stats_command(db_path: str) -> None:
    config = FlakyLensConfig(db_path=Path(db_path))
    store = SQLiteExecutionStore(config)

    RichReporter().report_stats(store.stats())

    store.close()


def clear_command(db_path: str, force: bool) -> None:
    console = Console()
    if not force:
        console.print(
            "[yellow]This will delete all execution history and flaky records.[/yellow]"
        )
        response = input("Are you sure? (yes/no): ").strip().lower()
        if response != "yes":
            console.print("[red]Aborted.[/red]")
            return

    config = FlakyLensConfig(db_path=Path(db_path))
    store = SQLiteExecutionStore(config)
    store.clear()
    store.close()

    console.print("[green]History cleared successfully.[/green]")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="FlakyLens - Score and track flaky tests from execution history"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    record_parser = subparsers.add_parser("record", help="Record one test execution")
    _add_common_args(record_parser)
    record_parser.add_argument("test_id", help="Test identifier")
    record_parser.add_argument("outcome", choices=["passed", "failed"])
    record_parser.add_argument(
        "--duration", type=int, required=True, help="Duration in milliseconds"
    )
    record_parser.add_argument(
        "--dom-score", type=float, default=None, help="DOM stability score (0-100)"
    )
    record_parser.add_argument(
        "--wait-failures", type=int, default=0, help="Wait condition failures"
    )
    record_parser.add_argument("--error", default=None, help="Error message")

    analyze_parser = subparsers.add_parser(
        "analyze", help="Analyze one test or every recorded test"
    )
    _add_common_args(analyze_parser)
    analyze_parser.add_argument("test_id", nargs="?", default=None)
    analyze_parser.add_argument(
        "--workers", type=int, default=4, help="Concurrent analysis workers"
    )

    report_parser = subparsers.add_parser("report", help="Show detailed flaky tests report")
    _add_common_args(report_parser)

    list_parser = subparsers.add_parser("list", help="List active flaky tests")
    _add_common_args(list_parser)

    resolve_parser = subparsers.add_parser("resolve", help="Mark a flaky test resolved")
    _add_common_args(resolve_parser)
    resolve_parser.add_argument("test_id")

    stats_parser = subparsers.add_parser("stats", help="Show execution history statistics")
    _add_common_args(stats_parser)

    clear_parser = subparsers.add_parser("clear", help="Clear history and flaky records")
    _add_common_args(clear_parser)
    clear_parser.add_argument("--force", action="store_true", help="Skip confirmation")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args.log_level)

    try:
        if args.command == "record":
            record_command(
                args.db,
                args.test_id,
                args.outcome,
                args.duration,
                args.dom_score,
                args.wait_failures,
                args.error,
            )
        elif args.command == "analyze":
            analyze_command(args.db, args.test_id, args.workers)
        elif args.command == "report":
            report_command(args.db)
        elif args.command == "list":
            list_command(args.db)
        elif args.command == "resolve":
            if not resolve_command(args.db, args.test_id):
                sys.exit(1)
        elif args.command == "stats":
            stats_command(args.db)
        elif args.command == "clear":
            clear_command(args.db, args.force)
        else:
            parser.print_help()
            sys.exit(1)
    except (FlakyLensError, ValidationError) as exc:
        Console(stderr=True).print(f"[red]Error:[/red] {exc}")
        sys.exit(2)


if __name__ == "__main__":
    main()
