# File: rate_agents/fetch_agent.py
"""
fetch_agent.py
──────────────────────────────────────────────────────
Talks to the OKX savings endpoints.

• lending-rate-summary  → the latest preRate (one live sample)
• lending-rate-history  → hourly rates, requested one UTC day at a time

Any connection problem or HTTP 4xx/5xx → TransportError
Well-formed HTTP but bad payload (code != "0", no data, NaN rate…)
                                       → ValidationError
Sends a browser User-Agent header so the API doesn't bounce us.
"""

from __future__ import annotations

import logging
import time
from datetime import date, datetime, timedelta, timezone

import requests

from rate_agents.errors import TransportError, ValidationError
from rate_agents.record import RateRecord, parse_rate

API_BASE    = "https://www.okx.com/api/v5/finance/savings"
SUMMARY_URL = f"{API_BASE}/lending-rate-summary"
HISTORY_URL = f"{API_BASE}/lending-rate-history"

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
                  "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
    "Accept": "application/json",
}

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────
def to_millis(ts: datetime) -> int:
    return int((ts - EPOCH) // timedelta(milliseconds=1))


def from_millis(value) -> datetime:
    try:
        return EPOCH + timedelta(milliseconds=int(value))
    except (TypeError, ValueError, OverflowError) as e:
        raise ValidationError(f"bad ts value {value!r}") from e


def get_json(url: str, params: dict, session=None, timeout: float = 30) -> dict:
    """GET url and return the payload once OKX says code == "0"."""
    http = session or requests
    try:
        resp = http.get(url, params=params, headers=HEADERS, timeout=timeout)
    except requests.RequestException as e:
        raise TransportError(f"{url}: {e}") from e
    if resp.status_code >= 400:
        raise TransportError(f"HTTP error! status: {resp.status_code} ({url})")

    try:
        payload = resp.json()
    except ValueError as e:
        raise ValidationError(f"{url}: response is not JSON") from e
    if not isinstance(payload, dict):
        raise ValidationError(f"{url}: unexpected payload {payload!r}")
    if str(payload.get("code")) != "0":
        raise ValidationError(f"API error: {payload.get('msg') or 'Unknown error'}")
    return payload


# ── Live ─────────────────────────────────────────────────────────
def fetch_latest(ccy: str = "USDT", session=None, timeout: float = 30,
                 now: datetime | None = None) -> RateRecord:
    """One sample: the current preRate stamped with the fetch time."""
    payload = get_json(SUMMARY_URL, {"ccy": ccy}, session=session, timeout=timeout)
    data = payload.get("data")
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        raise ValidationError(f"Invalid API response: {payload!r}")
    if "preRate" not in data[0]:
        raise ValidationError(f"Invalid API response, no preRate: {data[0]!r}")

    rate = parse_rate(data[0]["preRate"])
    record = RateRecord(now or datetime.now(timezone.utc), rate)
    logging.info("Fetched preRate %s at %s", data[0]["preRate"], record.timestamp.isoformat())
    return record


# ── Historical ───────────────────────────────────────────────────
def fetch_history_day(day: date, ccy: str = "USDT", session=None,
                      timeout: float = 30) -> list[RateRecord]:
    """
    Hourly records for one UTC day, ascending.

    The window asked for runs from 23:59:59 the day before to 23:59:59 on
    `day` so the 00:00 sample is included; anything outside `day` that the
    API returns anyway is dropped. No data is a valid, empty answer.
    """
    end = datetime(day.year, day.month, day.day, 23, 59, 59, tzinfo=timezone.utc)
    start = end - timedelta(days=1)
    params = {"ccy": ccy, "after": str(to_millis(end)), "before": str(to_millis(start))}
    payload = get_json(HISTORY_URL, params, session=session, timeout=timeout)

    rows = payload.get("data") or []
    if not isinstance(rows, list):
        raise ValidationError(f"Invalid history payload: {payload!r}")
    if not rows:
        logging.info("No data available for %s", day)
        return []

    records = []
    for row in rows:
        if not isinstance(row, dict):
            raise ValidationError(f"Invalid history row: {row!r}")
        records.append(RateRecord(from_millis(row.get("ts")), parse_rate(row.get("rate"))))

    kept = sorted((r for r in records if r.timestamp.date() == day), key=lambda r: r.timestamp)
    logging.info("Received %d records for %s, %d inside the day", len(records), day, len(kept))
    return kept


def fetch_history(start: date, end: date, ccy: str = "USDT", session=None,
                  timeout: float = 30, pause: float = 1.0, sleep=time.sleep) -> list[RateRecord]:
    """Day-by-day fetch over [start, end], inclusive."""
    if start > end:
        raise ValueError(f"start {start} is after end {end}")

    collected: list[RateRecord] = []
    day = start
    while day <= end:
        day_records = fetch_history_day(day, ccy=ccy, session=session, timeout=timeout)
        collected.extend(day_records)
        logging.info("Collected %d records for %s, total: %d", len(day_records), day, len(collected))
        day += timedelta(days=1)
        if day <= end and pause:
            # polite pause
            sleep(pause)
    return collected
