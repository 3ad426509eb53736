#!/usr/bin/env python3
"""
Pipeline status CLI

Usage:
    python -m quiz_pipeline.tracking sync                       # Rescan every family
    python -m quiz_pipeline.tracking sync --family tv-shows     # Rescan one family
    python -m quiz_pipeline.tracking status                     # Per-category summary
    python -m quiz_pipeline.tracking status --by-topic --category tv-shows
    python -m quiz_pipeline.tracking pending --limit 20         # Next units to generate
    python -m quiz_pipeline.tracking failed --json              # Remediation worklist
"""

import argparse
import json
import sys

from rich.console import Console
from rich.table import Table

from quiz_pipeline.config import load_config
from quiz_pipeline.logger import setup_logging
from quiz_pipeline.questions import QuestionStoreSet
from quiz_pipeline.registry import RegistryStore
from quiz_pipeline.tracking.index import PipelineTracker


console = Console()


def _unit_label(item: dict) -> str:
    label = item["topic"]
    if item["part"] is not None:
        label += f" p{item['part']}"
    if item["chapter"] is not None:
        label += f" c{item['chapter']}"
    return label


def print_sync_report(report: dict) -> None:
    table = Table(title=f"Sync {report['synced_at']}")
    table.add_column("Family")
    table.add_column("Units", justify="right")
    for family, count in report["families"].items():
        table.add_row(family, str(count))
    console.print(table)

    if report["skipped"]:
        console.print(f"[yellow]Skipped {len(report['skipped'])} malformed artifacts[/yellow]")
        for path in report["skipped"]:
            console.print(f"  [dim]{path}[/dim]")
    if report["unavailable_stores"]:
        console.print(
            f"[red]Unavailable question stores: {', '.join(report['unavailable_stores'])}[/red]"
        )
    if report["errors"]:
        console.print(f"[red]{report['errors']} units failed to sync (see logs/tracking.log)[/red]")


def print_summary(summary: dict) -> None:
    table = Table(title="Pipeline status")
    for column in ("Category", "Total", "Downloaded", "Completed", "Pending", "Failed", "Questions"):
        table.add_column(column, justify="left" if column == "Category" else "right")

    for row in summary["categories"]:
        table.add_row(
            row["category"],
            str(row["total"]),
            str(row["downloaded"]),
            f"[green]{row['completed']}[/green]",
            f"[yellow]{row['pending']}[/yellow]",
            f"[red]{row['failed']}[/red]" if row["failed"] else "0",
            str(row["questions"]),
        )
    totals = summary["totals"]
    table.add_row(
        "[bold]TOTAL[/bold]",
        *(str(totals[f]) for f in ("total", "downloaded", "completed", "pending", "failed", "questions")),
    )
    console.print(table)


def print_by_topic(rows: list) -> None:
    table = Table(title="Status by topic")
    for column in ("Category", "Subcategory", "Topic", "Units", "Completed", "Pending", "Failed", "Questions"):
        table.add_column(column)
    for row in rows:
        table.add_row(
            row["category"],
            row["subcategory"],
            row["topic"],
            str(row["total_units"]),
            str(row["completed"]),
            str(row["pending"]),
            str(row["failed"]),
            str(row["questions"]),
        )
    console.print(table)


def print_items(title: str, items: list, show_errors: bool = False) -> None:
    if not items:
        console.print(f"[green]No {title.lower()}[/green]")
        return

    table = Table(title=title)
    table.add_column("Category")
    table.add_column("Unit")
    table.add_column("Title")
    if show_errors:
        table.add_column("Attempts", justify="right")
        table.add_column("Error")
    else:
        table.add_column("Words", justify="right")

    for item in items:
        row = [item["category"], _unit_label(item), item["chapter_title"] or ""]
        if show_errors:
            row += [str(item["generation_attempts"]), item["generation_error"] or ""]
        else:
            row.append(str(item["word_count"]))
        table.add_row(*row)
    console.print(table)


def main():
    parser = argparse.ArgumentParser(
        description="Track content acquisition and question generation progress",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m quiz_pipeline.tracking sync                        # Full rescan
  python -m quiz_pipeline.tracking sync --family tv-shows      # Partial rescan
  python -m quiz_pipeline.tracking status                      # Summary per category
  python -m quiz_pipeline.tracking status --by-topic           # Breakdown per topic
  python -m quiz_pipeline.tracking pending --limit 20          # Backlog
  python -m quiz_pipeline.tracking failed                      # Failed units
        """,
    )
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    parser.add_argument("--env-file", type=str, default=None, help="Path to a .env file")
    parser.add_argument("--verbose", action="store_true", help="Detailed console output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Rescan artifacts and question stores")
    sync_parser.add_argument(
        "--family",
        action="append",
        dest="families",
        help="Family to rescan (repeatable, default: all)",
    )

    status_parser = subparsers.add_parser("status", help="Show the pipeline summary")
    status_parser.add_argument("--by-topic", action="store_true", help="Break down per topic")
    status_parser.add_argument("--category", type=str, default=None, help="Filter by category")

    pending_parser = subparsers.add_parser("pending", help="List downloaded units without questions")
    pending_parser.add_argument("--limit", type=int, default=50, help="Max items (default: 50)")

    subparsers.add_parser("failed", help="List units with a recorded generation error")

    args = parser.parse_args()

    setup_logging(logger_name="tracking", verbose=args.verbose)
    config = load_config(args.env_file)

    stores = QuestionStoreSet(config.data_dir)
    registry = RegistryStore(config.registry_path)
    tracker = PipelineTracker(config, stores, registry)

    try:
        if args.command == "sync":
            result = tracker.sync(args.families)
            printer = print_sync_report
        elif args.command == "status":
            if args.by_topic:
                result = tracker.by_topic(args.category)
                printer = print_by_topic
            else:
                result = tracker.summary()
                printer = print_summary
        elif args.command == "pending":
            result = tracker.pending_items(args.limit)
            printer = lambda items: print_items("Pending units", items)  # noqa: E731
        else:
            result = tracker.failed_items()
            printer = lambda items: print_items("Failed units", items, show_errors=True)  # noqa: E731

        if args.json:
            print(json.dumps(result, indent=2, ensure_ascii=False))
        else:
            printer(result)

    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(2)
    finally:
        tracker.close()
        registry.close()
        stores.close()


if __name__ == "__main__":
    main()
