# File: rate_agents/store_agent.py
"""
store_agent.py
CSV-backed series stores:

    data/rates.csv     live store ("current")
    data/YYYY-MM.csv   one archive per past month

Every file is `timestamp,preRate` + one row per record, ascending by
timestamp. A store never holds two records in the same UTC hour.
"""

from __future__ import annotations

import enum
import itertools
import logging
import os
import re
from pathlib import Path
from typing import Iterable

import pandas as pd

from rate_agents.errors import StorageIOError, ValidationError
from rate_agents.record import HEADER, RateRecord

CURRENT = "current"
LIVE_FILE = "rates.csv"
MONTH_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
SAVE_MODES = ("overwrite", "append")


class UpsertResult(enum.Enum):
    WRITTEN = "written"
    SKIPPED_DUPLICATE = "skipped_duplicate"


class StoreLocator:
    """Maps a store identity ("current" or YYYY-MM) to its CSV file."""

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    def path(self, store: str = CURRENT) -> Path:
        if store == CURRENT:
            return self.data_dir / LIVE_FILE
        if MONTH_KEY_RE.match(store or ""):
            return self.data_dir / f"{store}.csv"
        raise ValueError(f"unknown store {store!r} (expected 'current' or YYYY-MM)")

    def archive_keys(self) -> list[str]:
        if not self.data_dir.exists():
            return []
        return sorted(p.stem for p in self.data_dir.glob("*.csv") if MONTH_KEY_RE.match(p.stem))


# ── Load / save ──────────────────────────────────────────────────
def load(path: Path) -> list[RateRecord]:
    """
    Read a store. A missing or zero-byte file is an empty store; a bad
    header or any malformed row fails the whole load.
    """
    path = Path(path)
    if not path.exists():
        return []
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        return []
    except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
        raise StorageIOError(f"cannot read {path}: {e}") from e

    if tuple(df.columns) != HEADER:
        raise StorageIOError(f"{path}: unexpected header {list(df.columns)}")

    records = []
    for n, (ts, rate) in enumerate(df.itertuples(index=False, name=None), start=1):
        try:
            records.append(RateRecord.from_strings(ts, rate))
        except ValidationError as e:
            raise StorageIOError(f"{path}: data row {n} is corrupt ({e})") from e
    return records


def save(path: Path, records: Iterable[RateRecord], mode: str = "overwrite") -> None:
    """
    overwrite – header + records in the order given, swapped in atomically.
    append    – rows only, added after whatever is there.
    Callers sort; this function writes what it is handed.
    """
    if mode not in SAVE_MODES:
        raise ValueError(f"mode must be one of {SAVE_MODES}, got {mode!r}")
    path = Path(path)
    rows = [r.to_row() for r in records]
    if mode == "append" and not rows:
        return

    df = pd.DataFrame(rows, columns=list(HEADER))
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if mode == "append" and path.exists() and path.stat().st_size > 0:
            df.to_csv(path, mode="a", header=False, index=False, lineterminator="\n")
        else:
            tmp = path.with_name(path.name + ".tmp")
            df.to_csv(tmp, index=False, lineterminator="\n")
            os.replace(tmp, path)
    except OSError as e:
        raise StorageIOError(f"cannot write {path}: {e}") from e


# ── Merge / dedup ────────────────────────────────────────────────
def merge_records(*batches: Iterable[RateRecord]) -> list[RateRecord]:
    """
    Union of the batches, one record per UTC hour, ascending.
    Scan order is the argument order; the first record seen in an hour wins.
    """
    merged = list(itertools.chain.from_iterable(batches))
    if not merged:
        return []
    df = pd.DataFrame({
        "record": merged,
        "bucket": [r.bucket for r in merged],
        "ts": [r.timestamp for r in merged],
    })
    df = df.drop_duplicates(subset=["bucket"], keep="first")
    df = df.sort_values("ts", kind="stable")
    return df["record"].tolist()


def is_sorted(records: list[RateRecord]) -> bool:
    return all(a.timestamp <= b.timestamp for a, b in zip(records, records[1:]))


def upsert_hourly(path: Path, candidate: RateRecord) -> UpsertResult:
    existing = load(path)
    if any(r.bucket == candidate.bucket for r in existing):
        logging.info("Data for hour %s already in %s, skipping", candidate.bucket, Path(path).name)
        return UpsertResult.SKIPPED_DUPLICATE

    if is_sorted(existing) and (not existing or existing[-1].timestamp <= candidate.timestamp):
        save(path, [candidate], mode="append")
    else:
        logging.warning("%s: sample %s lands before stored data – rewriting sorted",
                        Path(path).name, candidate.bucket)
        save(path, merge_records(existing, [candidate]), mode="overwrite")
    ts, rate = candidate.to_row()
    logging.info("Stored preRate %s at %s in %s", rate, ts, Path(path).name)
    return UpsertResult.WRITTEN
