# File: rate_agents/record.py
"""
record.py – the (timestamp, preRate) sample every store holds.

Timestamps are UTC, millisecond precision, written as
    2025-07-01T01:00:00.000Z
Rates are fractions (0.0005 == 0.05 %) and must be finite.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone

import numpy as np

from rate_agents.errors import ValidationError

HEADER = ("timestamp", "preRate")


def parse_timestamp(text: str) -> datetime:
    """
    Parse an ISO-8601 string into an aware UTC datetime.

    Accepts a trailing Z, an explicit offset (converted) or no zone at all
    (taken as UTC).
    """
    if not isinstance(text, str):
        raise ValidationError(f"bad timestamp {text!r}")
    raw = text.strip()
    if not raw:
        raise ValidationError("empty timestamp")
    if raw.endswith(("Z", "z")):
        raw = raw[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(raw)
    except ValueError as e:
        raise ValidationError(f"bad timestamp {text!r}") from e
    return normalize_timestamp(ts)


def normalize_timestamp(ts: datetime) -> datetime:
    """UTC, truncated to whole milliseconds."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    ts = ts.astimezone(timezone.utc)
    return ts.replace(microsecond=ts.microsecond // 1000 * 1000)


def format_timestamp(ts: datetime) -> str:
    return normalize_timestamp(ts).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_rate(value) -> float:
    if isinstance(value, str):
        value = value.strip()
    try:
        rate = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"bad rate value {value!r}") from e
    if not math.isfinite(rate):
        raise ValidationError(f"non-finite rate value {value!r}")
    return rate


def format_rate(rate: float) -> str:
    """Shortest round-trip text, never scientific (5e-05 → 0.00005)."""
    return np.format_float_positional(rate, trim="-")


@dataclass(frozen=True)
class RateRecord:
    timestamp: datetime
    rate: float

    def __post_init__(self):
        if not isinstance(self.timestamp, datetime):
            raise ValidationError(f"timestamp must be a datetime, got {self.timestamp!r}")
        object.__setattr__(self, "timestamp", normalize_timestamp(self.timestamp))
        object.__setattr__(self, "rate", parse_rate(self.rate))

    @classmethod
    def from_strings(cls, timestamp: str, rate: str) -> "RateRecord":
        return cls(parse_timestamp(timestamp), parse_rate(rate))

    @property
    def bucket(self) -> str:
        """UTC (year, month, day, hour) dedup key."""
        return self.timestamp.strftime("%Y-%m-%dT%H")

    @property
    def month_key(self) -> str:
        return month_key(self.timestamp)

    def to_row(self) -> tuple[str, str]:
        return format_timestamp(self.timestamp), format_rate(self.rate)


def month_key(ts: datetime) -> str:
    ts = normalize_timestamp(ts)
    return f"{ts.year:04d}-{ts.month:02d}"
