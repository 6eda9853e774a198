"""Command-line scrape runner.

Runs the listing pipeline once, stores the listings in the database and
prints a summary. With the browser strategy a visible Chrome window opens;
if an anti-bot challenge appears, solve it there and the run continues.

Usage:
    python -m rentfinder.run_scraper --pages 3
    python -m rentfinder.run_scraper --pages 1 --strategy http --no-geocode --dry-run
    python -m rentfinder.run_scraper --pages 5 --out listings.jsonl
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

import structlog

from rentfinder.config import PipelineConfig, settings
from rentfinder.core.exceptions import FatalScraperError
from rentfinder.logging_config import configure_logging
from rentfinder.scrapers.base import NormalizedListing
from rentfinder.scrapers.pipeline import ScrapeResult
from rentfinder.services.geocoding import build_geocoder
from rentfinder.services.scrape_service import run_scrape

logger = structlog.get_logger(__name__)


def write_jsonl(path: str, listings: List[NormalizedListing]) -> None:
    """Write one JSON object per listing."""
    with open(path, "w", encoding="utf-8") as fh:
        for listing in listings:
            fh.write(json.dumps(listing.to_dict(), ensure_ascii=False))
            fh.write("\n")


async def store(listings: List[NormalizedListing]) -> int:
    # Imported here so --dry-run never touches the database
    from rentfinder.db.session import async_session_factory, engine, init_db
    from rentfinder.services.listing_service import ListingService

    await init_db(engine)
    try:
        async with async_session_factory() as session:
            return await ListingService(session).upsert_many(listings)
    finally:
        await engine.dispose()


def print_summary(result: ScrapeResult, stored: Optional[int], limit: int = 10) -> None:
    stats = result.stats
    print(f"\n{'=' * 60}")
    print("  Scrape summary")
    print(f"{'=' * 60}")
    print(f"  Pages:        {stats.pages_fetched}/{stats.pages_requested} fetched, {stats.pages_failed} failed")
    print(f"  Items seen:   {stats.items_seen}")
    print(f"  Duplicates:   {stats.duplicates}")
    print(f"  Invalid:      {stats.invalid}")
    print(f"  Ads skipped:  {stats.ads_skipped}")
    print(f"  Listings:     {stats.total} ({stats.with_coordinates} with coordinates, {stats.geocoded} geocoded)")
    print(f"  Stored:       {'skipped (dry run)' if stored is None else stored}")
    print(f"{'=' * 60}")

    for i, listing in enumerate(result.listings[:limit], 1):
        print(f"[{i}] {listing.title}")
        print(f"    {listing.price:,} ILS  |  {listing.source_url}")
    if len(result.listings) > limit:
        print(f"    ... and {len(result.listings) - limit} more")
    print()


async def main(
    pages: int,
    geocode: bool,
    strategy: Optional[str],
    dry_run: bool,
    out: Optional[str],
) -> int:
    """Run the pipeline and return a process exit code.

    Args:
        pages: Number of listing pages to scrape
        geocode: Geocode listings without coordinates
        strategy: Fetch strategy override, None for the configured one
        dry_run: Scrape but do not store
        out: Optional JSONL output path
    """
    config = PipelineConfig.from_settings(settings)
    geocoder = build_geocoder(settings) if geocode else None

    try:
        result = await run_scrape(config, pages, geocode=geocode, geocoder=geocoder, strategy=strategy)
    except FatalScraperError as e:
        logger.error("scrape_aborted", error=e.message)
        print(f"\n[aborted] {e.message}")
        return 2

    if out:
        write_jsonl(out, result.listings)
        logger.info("listings_written", path=out, count=len(result.listings))

    stored = None
    if not dry_run and result.listings:
        stored = await store(result.listings)
    elif not dry_run:
        stored = 0

    print_summary(result, stored)
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed Namespace object.
    """
    parser = argparse.ArgumentParser(
        description="Scrape rental listings and store them in the local database.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--pages",
        type=int,
        default=settings.DEFAULT_PAGES,
        help=f"Number of listing pages to scrape (default: {settings.DEFAULT_PAGES})",
    )
    parser.add_argument(
        "--no-geocode",
        action="store_true",
        help="Skip geocoding of listings without coordinates.",
    )
    parser.add_argument(
        "--strategy",
        choices=["auto", "browser", "http"],
        default=None,
        help=f"Fetch strategy (default: FETCH_STRATEGY={settings.FETCH_STRATEGY})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Scrape but do not write to the database.",
    )
    parser.add_argument(
        "--out",
        metavar="FILE",
        default=None,
        help="Also write the listings to a JSON Lines file.",
    )

    args = parser.parse_args(argv)
    if args.pages < 1:
        parser.error("--pages must be at least 1")
    return args


def cli(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
    try:
        return asyncio.run(
            main(
                pages=args.pages,
                geocode=not args.no_geocode,
                strategy=args.strategy,
                dry_run=args.dry_run,
                out=args.out,
            )
        )
    except KeyboardInterrupt:
        print("\n\n[interrupted]")
        return 130


if __name__ == "__main__":
    sys.exit(cli())
