# File: rate_agents/rollover_agent.py
"""
rollover_agent.py
Moves every record that doesn't belong to the current UTC month out of
data/rates.csv into data/YYYY-MM.csv. Archives are written first; the
live file is only rewritten once all of them are on disk.

Safe to run any number of times:
    python -m rate_agents.rollover_agent
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone

from rate_agents.config import configure_logging, load_settings
from rate_agents.errors import RateTrackerError
from rate_agents.record import RateRecord, month_key
from rate_agents.store_agent import CURRENT, StoreLocator, load, merge_records, save


@dataclass
class RolloverReport:
    current_month: str
    archived: dict[str, int] = field(default_factory=dict)
    kept: int = 0

    @property
    def rolled_over(self) -> bool:
        return bool(self.archived)


def partition_by_month(records: list[RateRecord]) -> dict[str, list[RateRecord]]:
    parts: dict[str, list[RateRecord]] = {}
    for r in records:
        parts.setdefault(r.month_key, []).append(r)
    return parts


def rollover(locator: StoreLocator, now: datetime | None = None) -> RolloverReport:
    now = now or datetime.now(timezone.utc)
    current = month_key(now)
    report = RolloverReport(current_month=current)

    live_path = locator.path(CURRENT)
    live = load(live_path)
    if not live:
        logging.info("No existing data, skipping rollover")
        return report

    parts = partition_by_month(live)
    logging.info("Found data for months: %s (current %s)", ", ".join(sorted(parts)), current)

    for key in sorted(parts):
        if key == current:
            continue
        archive_path = locator.path(key)
        merged = merge_records(load(archive_path), parts[key])
        save(archive_path, merged, mode="overwrite")
        report.archived[key] = len(parts[key])
        logging.info("Archived %d records for %s to %s (%d total)",
                     len(parts[key]), key, archive_path.name, len(merged))

    keep = parts.get(current, [])
    report.kept = len(keep)
    if report.rolled_over:
        save(live_path, merge_records(keep), mode="overwrite")
        logging.info("Keeping %d records for current month %s", len(keep), current)
    else:
        logging.info("No rollover needed – all data is from current month")
    return report


def main() -> None:
    settings = load_settings()
    configure_logging("rollover", settings.log_dir)
    try:
        report = rollover(StoreLocator(settings.data_dir))
    except RateTrackerError as e:
        logging.error("Rollover failed: %s", e)
        sys.exit(f"Rollover failed: {e}")

    if report.rolled_over:
        months = ", ".join(f"{k} ({n})" for k, n in report.archived.items())
        print(f"[OK]   archived {months}; {report.kept} records kept live")
    else:
        print(f"[OK]   nothing to roll over for {report.current_month}")


if __name__ == "__main__":
    main()
