# File: rate_agents/ingest_agent.py
"""
ingest_agent.py
Hourly entry point: roll stale months out of data/rates.csv, fetch the
latest OKX preRate and store it unless this UTC hour is already present.
Also hosts the bulk merge used by backfill_agent.

Run from cron / Task Scheduler every hour:
    python -m rate_agents.ingest_agent
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Iterable

from rate_agents.config import configure_logging, load_settings
from rate_agents.errors import RateTrackerError, ValidationError
from rate_agents.fetch_agent import fetch_latest
from rate_agents.record import RateRecord, month_key
from rate_agents.rollover_agent import RolloverReport, rollover
from rate_agents.store_agent import (
    CURRENT,
    StoreLocator,
    UpsertResult,
    load,
    merge_records,
    save,
    upsert_hourly,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def check_archive_batch(target: str, records: list[RateRecord], current: str) -> None:
    """Archives hold one finished month; anything else stays out of them."""
    if target >= current:
        raise ValidationError(f"archive {target} is not a past month (current month is {current})")
    strays = sorted({r.month_key for r in records if r.month_key != target})
    if strays:
        raise ValidationError(f"archive {target} can't take records from {', '.join(strays)}")


@dataclass
class IngestResult:
    record: RateRecord
    outcome: UpsertResult
    rollover: RolloverReport

    @property
    def written(self) -> bool:
        return self.outcome is UpsertResult.WRITTEN


@dataclass
class BackfillResult:
    target: str
    existing: int
    incoming: int
    written: int

    @property
    def duplicates(self) -> int:
        return self.existing + self.incoming - self.written


class IngestionCoordinator:
    """
    Runs the store operations in order against one data directory.

    fetcher – returns one RateRecord (or raises TransportError/ValidationError);
              only ingest_one() needs it
    clock   – returns "now" as an aware UTC datetime; decides the current month
    """

    def __init__(self, locator: StoreLocator, fetcher: Callable[[], RateRecord] | None = None,
                 clock: Callable[[], datetime] = utc_now):
        self.locator = locator
        self.fetcher = fetcher
        self.clock = clock

    def ingest_one(self) -> IngestResult:
        if self.fetcher is None:
            raise TypeError("ingest_one() needs a fetcher")
        report = rollover(self.locator, now=self.clock())
        record = self.fetcher()
        outcome = upsert_hourly(self.locator.path(CURRENT), record)
        return IngestResult(record=record, outcome=outcome, rollover=report)

    def backfill(self, records: Iterable[RateRecord], target: str = CURRENT) -> BackfillResult:
        """
        Merge a batch into one store. Stored records win over incoming ones
        in the same UTC hour; within the batch the earlier one wins.

        The live store takes any months; the next ingest_one() rolls
        anything stale out of it. An archive only takes records of its own
        month, and only for a month that is already over.
        """
        incoming = list(records)
        path = self.locator.path(target)
        if target != CURRENT:
            check_archive_batch(target, incoming, month_key(self.clock()))
        existing = load(path)
        merged = merge_records(existing, incoming)
        save(path, merged, mode="overwrite")
        result = BackfillResult(target=target, existing=len(existing),
                                incoming=len(incoming), written=len(merged))
        logging.info("Writing %d total records to %s (%d incoming + %d existing, %d duplicates removed)",
                     result.written, path.name, result.incoming, result.existing, result.duplicates)
        return result


def main() -> None:
    settings = load_settings()
    configure_logging("ingest", settings.log_dir)
    logging.info("Fetching OKX %s lending rate…", settings.ccy)

    fetcher = partial(fetch_latest, ccy=settings.ccy, timeout=settings.timeout)
    coordinator = IngestionCoordinator(StoreLocator(settings.data_dir), fetcher)
    try:
        result = coordinator.ingest_one()
    except RateTrackerError as e:
        logging.error("Error fetching lending rate: %s", e)
        sys.exit(f"Error fetching lending rate: {e}")

    ts, rate = result.record.to_row()
    if result.written:
        print(f"[OK]   preRate {rate} at {ts} stored")
    else:
        print(f"[SKIP] data for this hour already exists ({ts})")


if __name__ == "__main__":
    main()
