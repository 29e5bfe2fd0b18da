#!/usr/bin/env python3
"""
backfill_agent.py
Pulls historical hourly rates day by day and merges them into a store.

    python -m rate_agents.backfill_agent --start 2025-07-01 --end 2025-07-31
    python -m rate_agents.backfill_agent --start 2025-06-01 --end 2025-06-30 --target 2025-06

Data lands in the --target store as-is (default: the live rates.csv);
the next ingest run rolls any past-month rows out into their archives.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime

from rate_agents.config import configure_logging, load_settings
from rate_agents.errors import RateTrackerError
from rate_agents.fetch_agent import fetch_history
from rate_agents.ingest_agent import IngestionCoordinator
from rate_agents.store_agent import CURRENT, StoreLocator


def parse_day(text: str) -> date:
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {text!r}") from e


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Backfill historical OKX lending rates.")
    parser.add_argument("--start", type=parse_day, required=True, help="First UTC day (YYYY-MM-DD).")
    parser.add_argument("--end", type=parse_day, required=True, help="Last UTC day, inclusive.")
    parser.add_argument(
        "--target",
        default=CURRENT,
        help="Store to merge into: 'current' (default) or an archive key YYYY-MM.",
    )
    args = parser.parse_args(argv)
    if args.start > args.end:
        parser.error("--start must not be after --end")
    if args.target != CURRENT:
        for day in (args.start, args.end):
            if f"{day:%Y-%m}" != args.target:
                parser.error(f"--target {args.target} only takes days from that month, got {day}")
    return args


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    settings = load_settings()
    configure_logging("backfill", settings.log_dir)
    logging.info("Fetching historical data from %s to %s", args.start, args.end)

    locator = StoreLocator(settings.data_dir)
    try:
        locator.path(args.target)
    except ValueError as e:
        sys.exit(str(e))

    coordinator = IngestionCoordinator(locator)
    try:
        records = fetch_history(args.start, args.end, ccy=settings.ccy,
                                timeout=settings.timeout, pause=settings.pause)
        if not records:
            logging.info("No historical data found for the specified date range")
            print("[SKIP] no historical data in range")
            return
        result = coordinator.backfill(records, target=args.target)
    except RateTrackerError as e:
        logging.error("Error fetching historical rates: %s", e)
        sys.exit(f"Error fetching historical rates: {e}")

    print(f"[OK]   {result.written} records in {args.target} "
          f"({result.incoming} fetched, {result.duplicates} duplicates removed)")


if __name__ == "__main__":
    main()
