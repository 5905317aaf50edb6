"""Tests for billing period arithmetic."""

from __future__ import annotations

import os
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_invoice.db")

import pytest

from app.backend.src.services.errors import ValidationError
from app.backend.src.services.periods import (
    PERIOD_KINDS,
    first_monday_of_month,
    fortnight_start,
    parse_anchor_date,
    period_range,
)

ONE_MICROSECOND = timedelta(microseconds=1)


def test_day_range_covers_whole_calendar_day() -> None:
    span = period_range("day", date(2024, 3, 6))

    assert span.start == datetime(2024, 3, 6, 0, 0)
    assert span.end == datetime(2024, 3, 6, 23, 59, 59, 999999)


@pytest.mark.parametrize(
    "anchor",
    [date(2024, 3, 4), date(2024, 3, 6), date(2024, 3, 10)],
)
def test_week_starts_on_monday_including_sunday_anchor(anchor: date) -> None:
    span = period_range("week", anchor)

    assert span.start == datetime(2024, 3, 4)
    assert span.end == datetime(2024, 3, 10, 23, 59, 59, 999999)


def test_month_range_rolls_over_year_end() -> None:
    span = period_range("month", date(2024, 12, 15))

    assert span.start == datetime(2024, 12, 1)
    assert span.end == datetime(2025, 1, 1) - ONE_MICROSECOND


def test_fortnight_blocks_anchor_to_first_monday_of_month() -> None:
    first = period_range("fortnight", date(2024, 3, 6))
    second = period_range("fortnight", date(2024, 3, 20))

    assert first.start == datetime(2024, 3, 4)
    assert first.end == datetime(2024, 3, 17, 23, 59, 59, 999999)
    assert second.start == datetime(2024, 3, 18)


def test_fortnight_for_days_before_first_monday_uses_previous_month() -> None:
    # 2 March 2024 is a Saturday; its week starts on Monday 26 February.
    span = period_range("fortnight", date(2024, 3, 2))

    assert span.start == datetime(2024, 2, 19)
    assert span.contains(datetime(2024, 3, 2, 12, 0))


def test_fortnight_start_when_month_begins_on_monday() -> None:
    assert fortnight_start(date(2024, 4, 1)) == date(2024, 4, 1)
    assert fortnight_start(date(2024, 4, 15)) == date(2024, 4, 15)


@pytest.mark.parametrize("kind", PERIOD_KINDS)
@pytest.mark.parametrize(
    "anchor",
    [date(2024, 1, 1), date(2024, 2, 29), date(2024, 3, 31), date(2023, 10, 15), date(2025, 6, 30)],
)
def test_anchor_falls_inside_its_range_and_end_is_last_microsecond(kind: str, anchor: date) -> None:
    span = period_range(kind, anchor)

    assert span.start <= datetime.combine(anchor, datetime.min.time()) <= span.end
    assert span.end == span.start + span.duration - ONE_MICROSECOND
    if kind == "day":
        assert span.duration == timedelta(days=1)
    elif kind == "week":
        assert span.duration == timedelta(days=7)
    elif kind == "fortnight":
        assert span.duration == timedelta(days=14)


@pytest.mark.parametrize("year,month", [(2024, 2), (2024, 3), (2024, 4), (2024, 9), (2025, 6)])
def test_fortnights_from_first_monday_do_not_overlap(year: int, month: int) -> None:
    day = first_monday_of_month(date(year, month, 1))
    spans = set()
    while day.month == month:
        spans.add(period_range("fortnight", day))
        day += timedelta(days=1)

    ordered = sorted(spans, key=lambda span: span.start)
    assert len(ordered) <= 3
    for earlier, later in zip(ordered, ordered[1:]):
        assert earlier.end < later.start
        assert later.start - earlier.start == timedelta(days=14)


def test_anchors_either_side_of_the_fourteenth_get_disjoint_fortnights() -> None:
    early = period_range("fortnight", date(2024, 3, 10))
    late = period_range("fortnight", date(2024, 3, 20))

    assert early.end < late.start
    assert early.end + ONE_MICROSECOND == late.start


def test_unknown_period_kind_falls_back_to_week() -> None:
    span = period_range("quarter", date(2024, 3, 6))

    assert span.kind == "week"
    assert span.start == datetime(2024, 3, 4)


def test_datetime_anchor_is_truncated_to_its_day() -> None:
    span = period_range("day", datetime(2024, 3, 6, 18, 45))

    assert span.start == datetime(2024, 3, 6)


def test_parse_anchor_date_accepts_iso_strings_and_defaults_to_today() -> None:
    assert parse_anchor_date("2024-03-06") == date(2024, 3, 6)
    assert parse_anchor_date(None, today=date(2024, 1, 2)) == date(2024, 1, 2)
    assert parse_anchor_date(datetime(2024, 3, 6, 10, 0)) == date(2024, 3, 6)


@pytest.mark.parametrize("value", ["06/03/2024", "2024-13-01", "", "yesterday"])
def test_parse_anchor_date_rejects_bad_formats(value: str) -> None:
    with pytest.raises(ValidationError):
        parse_anchor_date(value)
