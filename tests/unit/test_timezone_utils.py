"""
Unit tests for timestamp and money helpers.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from vlossom_client.utils.money import format_duration, format_price, round_half_up, to_cents
from vlossom_client.utils.timezone import now_utc, parse_timestamp, to_iso


def test_now_utc_is_aware():
    current = now_utc()
    assert current.tzinfo is not None
    assert current.utcoffset() == timedelta(0)


def test_parse_timestamp_z_suffix():
    parsed = parse_timestamp("2025-03-01T09:30:00.000Z")
    assert parsed == datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def test_parse_timestamp_keeps_offset():
    parsed = parse_timestamp("2025-03-01T11:30:00+02:00")
    assert parsed == datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)
    assert parsed.utcoffset() == timedelta(hours=2)


def test_parse_timestamp_naive_treated_as_utc():
    assert parse_timestamp(datetime(2025, 3, 1, 9, 30)).tzinfo == timezone.utc
    assert parse_timestamp("2025-03-01T09:30:00").tzinfo == timezone.utc


def test_parse_timestamp_none_passes_through():
    assert parse_timestamp(None) is None


def test_to_iso_millisecond_precision():
    value = datetime(2025, 3, 1, 9, 30, 5, 123456, tzinfo=timezone.utc)
    assert to_iso(value) == "2025-03-01T09:30:05.123Z"


def test_to_iso_converts_offsets_to_utc():
    value = datetime(2025, 3, 1, 11, 30, tzinfo=timezone(timedelta(hours=2)))
    assert to_iso(value) == "2025-03-01T09:30:00.000Z"


@pytest.mark.parametrize(
    "value,expected",
    [(2.5, 3), (3.5, 4), (2.4, 2), (-2.5, -3), (Decimal("1234.5"), 1235), (7, 7)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_to_cents_accepts_strings():
    assert to_cents("35000") == 35000
    assert to_cents(1200) == 1200
    assert to_cents(None) is None
    assert to_cents("") is None


def test_format_price():
    assert format_price(123450) == "R 1,234.50"
    assert format_price(0) == "R 0.00"
    assert format_price(5) == "R 0.05"
    assert format_price(-2500) == "-R 25.00"
    assert format_price(None) == "—"


def test_format_duration():
    assert format_duration(45) == "45min"
    assert format_duration(90) == "1h 30min"
    assert format_duration(120) == "2h"
