#!/usr/bin/env python3
"""
Scrape a season of transcripts into the generation cache.

Usage:
    python -m quiz_pipeline.scraping "Friends" --season 1 --episodes 24
    python -m quiz_pipeline.scraping "The Office" --slug the-office-us --season 2 --episodes 22
"""

import argparse
import sys

from rich.console import Console

from quiz_pipeline.config import load_config
from quiz_pipeline.logger import setup_logging
from quiz_pipeline.scraping.http import HttpClient
from quiz_pipeline.scraping.transcripts import ScraperChain, acquire_season


console = Console()


def main():
    parser = argparse.ArgumentParser(
        description="Scrape every missing episode transcript of a season",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m quiz_pipeline.scraping "Friends" --season 1 --episodes 24
  python -m quiz_pipeline.scraping "The Office" --slug the-office-us --season 2 --episodes 22
  python -m quiz_pipeline.scraping "Seinfeld" --season 3 --episodes 23 --delay 5
        """,
    )
    parser.add_argument("show", type=str, help="Show name as the sources spell it")
    parser.add_argument("--season", type=int, required=True, help="Season number")
    parser.add_argument("--episodes", type=int, required=True, help="Episode count of the season")
    parser.add_argument("--slug", type=str, default=None, help="Topic slug (default: derived from show)")
    parser.add_argument(
        "--delay", type=float, default=2.0, help="Seconds between episodes (default: 2)"
    )
    parser.add_argument("--env-file", type=str, default=None, help="Path to a .env file")
    parser.add_argument("--verbose", action="store_true", help="Detailed console output")

    args = parser.parse_args()

    setup_logging(logger_name="scraper", verbose=args.verbose)
    config = load_config(args.env_file)
    http = HttpClient(config)

    try:
        stats = acquire_season(
            ScraperChain.default(http),
            args.show,
            args.season,
            args.episodes,
            config.generation_dir,
            slug=args.slug,
            delay=args.delay,
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    finally:
        http.close()

    console.print(f"\n[bold]{args.show} season {args.season}[/bold]")
    console.print(f"  [green]Scraped:[/green] {stats['scraped']}")
    console.print(f"  [dim]Skipped:[/dim] {stats['skipped']}")
    console.print(f"  [red]Failed:[/red]  {stats['failed']}")
    for failure in stats["failures"]:
        console.print(f"    [red]{failure}[/red]")

    sys.exit(1 if stats["failed"] else 0)


if __name__ == "__main__":
    main()
