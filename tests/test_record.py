import math
from datetime import datetime, timedelta, timezone

import pytest

from rate_agents.errors import ValidationError
from rate_agents.record import (
    RateRecord,
    format_rate,
    format_timestamp,
    month_key,
    parse_rate,
    parse_timestamp,
)


def test_parse_timestamp_z_suffix_is_utc():
    ts = parse_timestamp("2025-07-01T01:00:00Z")
    assert ts == datetime(2025, 7, 1, 1, tzinfo=timezone.utc)


def test_parse_timestamp_converts_offset_and_naive():
    assert parse_timestamp("2025-07-01T03:00:00+02:00") == datetime(2025, 7, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2025-07-01T01:00:00") == datetime(2025, 7, 1, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("text", ["", "yesterday", "2025-13-01T00:00:00Z"])
def test_parse_timestamp_rejects_garbage(text):
    with pytest.raises(ValidationError):
        parse_timestamp(text)


def test_format_timestamp_millis_and_z():
    ts = datetime(2025, 7, 1, 1, 2, 3, 456789, tzinfo=timezone.utc)
    assert format_timestamp(ts) == "2025-07-01T01:02:03.456Z"


@pytest.mark.parametrize("value", ["NaN", "Infinity", "-inf", "abc", None, math.nan])
def test_parse_rate_rejects_non_finite(value):
    with pytest.raises(ValidationError):
        parse_rate(value)


def test_format_rate_never_scientific():
    assert format_rate(0.00005) == "0.00005"
    assert format_rate(0.05) == "0.05"


def test_record_keys():
    rec = RateRecord.from_strings("2025-06-30T23:59:59.999Z", "0.04")
    assert rec.bucket == "2025-06-30T23"
    assert rec.month_key == "2025-06"
    assert rec.to_row() == ("2025-06-30T23:59:59.999Z", "0.04")


def test_record_normalizes_to_utc():
    local = datetime(2025, 7, 1, 0, 30, tzinfo=timezone(timedelta(hours=2)))
    rec = RateRecord(local, 0.01)
    assert rec.timestamp.tzinfo == timezone.utc
    assert rec.month_key == "2025-06"
    assert month_key(local) == "2025-06"


def test_record_rejects_nan_rate():
    with pytest.raises(ValidationError):
        RateRecord(datetime(2025, 7, 1, tzinfo=timezone.utc), float("nan"))
