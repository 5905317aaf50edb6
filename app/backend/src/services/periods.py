"""Billing period arithmetic.

Periods are closed ranges of naive local datetimes. ``end`` is the last
representable instant of the period, one microsecond before the next
period starts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

import structlog

from app.backend.src.services.errors import ValidationError

LOGGER = structlog.get_logger(__name__)

PERIOD_KINDS: tuple[str, ...] = ("day", "week", "fortnight", "month")
DEFAULT_PERIOD = "week"
RESOLUTION = timedelta(microseconds=1)


@dataclass(frozen=True, slots=True)
class PeriodRange:
    """A normalized billing period."""

    kind: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start + RESOLUTION


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


def week_start(day: date) -> date:
    """Return the Monday on or before ``day``."""

    return day - timedelta(days=day.isoweekday() - 1)


def first_monday_of_month(day: date) -> date:
    first = day.replace(day=1)
    return first + timedelta(days=(8 - first.isoweekday()) % 7)


def fortnight_start(day: date) -> date:
    """Return the first day of the month-anchored fortnight containing ``day``.

    Fortnights are counted from the first Monday of the calendar month of the
    week's Monday, so the block sequence restarts every month.
    """

    monday = week_start(day)
    first_monday = first_monday_of_month(monday)
    block = (monday - first_monday).days // 14
    return first_monday + timedelta(days=14 * block)


def period_range(period: str, anchor: date | datetime) -> PeriodRange:
    """Return the billing period of kind ``period`` that contains ``anchor``.

    Unknown kinds fall back to ``week``.
    """

    day = anchor.date() if isinstance(anchor, datetime) else anchor
    kind = (period or "").strip().lower()
    if kind not in PERIOD_KINDS:
        LOGGER.warning("unknown_period_kind", period=period, fallback=DEFAULT_PERIOD)
        kind = DEFAULT_PERIOD

    if kind == "day":
        start = _midnight(day)
        following = start + timedelta(days=1)
    elif kind == "week":
        start = _midnight(week_start(day))
        following = start + timedelta(days=7)
    elif kind == "fortnight":
        start = _midnight(fortnight_start(day))
        following = start + timedelta(days=14)
    else:
        start = _midnight(day.replace(day=1))
        if day.month == 12:
            following = _midnight(date(day.year + 1, 1, 1))
        else:
            following = _midnight(date(day.year, day.month + 1, 1))

    return PeriodRange(kind=kind, start=start, end=following - RESOLUTION)


def parse_anchor_date(value: date | datetime | str | None, *, today: date | None = None) -> date:
    """Coerce ``value`` to a calendar date; ``None`` means today."""

    if value is None:
        return today or date.today()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (AttributeError, ValueError) as exc:
        raise ValidationError(
            f"invalid date {value!r}: expected YYYY-MM-DD"
        ) from exc


__all__ = [
    "DEFAULT_PERIOD",
    "PERIOD_KINDS",
    "PeriodRange",
    "first_monday_of_month",
    "fortnight_start",
    "parse_anchor_date",
    "period_range",
    "week_start",
]
