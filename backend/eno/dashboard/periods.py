# Overview: Date ranges for dashboard filters; presets and inclusive day filtering.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from ..time_utils import parse_business_date, utcnow


PRESETS = ("today", "this_week", "this_month", "last_month")


@dataclass(frozen=True)
class DateRange:
    """Inclusive [start, end] range of days. end defaults to start."""

    start: date
    end: date | None = None

    def __post_init__(self):
        if self.end is None:
            object.__setattr__(self, "end", self.start)
        if self.end < self.start:
            raise ValueError("Date range end is before its start")

    def contains(self, value) -> bool:
        day = to_day(value)
        return day is not None and self.start <= day <= self.end

    def days(self) -> list[date]:
        return [self.start + timedelta(days=i) for i in range((self.end - self.start).days + 1)]

    def labels(self) -> list[str]:
        return [day.strftime("%d/%m") for day in self.days()]


def to_day(value) -> date | None:
    """Business date or timestamp (string, date or datetime) to its day; None when unparseable."""
    try:
        return parse_business_date(value)
    except (TypeError, ValueError):
        return None


def _month_end(day: date) -> date:
    next_month = (day.replace(day=28) + timedelta(days=4)).replace(day=1)
    return next_month - timedelta(days=1)


def preset(name: str, today: date | None = None) -> DateRange:
    """today, this_week (Monday to Sunday), this_month or last_month."""
    today = today or utcnow().date()
    if name == "today":
        return DateRange(today, today)
    if name == "this_week":
        monday = today - timedelta(days=today.weekday())
        return DateRange(monday, monday + timedelta(days=6))
    if name == "this_month":
        return DateRange(today.replace(day=1), _month_end(today))
    if name == "last_month":
        last = today.replace(day=1) - timedelta(days=1)
        return DateRange(last.replace(day=1), last)
    raise ValueError(f"Unknown date preset: {name}")


def filter_by_day(rows: Iterable[dict], field: str, period: DateRange | None) -> list[dict]:
    """Rows whose field falls inside period; every row when period is None."""
    if period is None:
        return list(rows)
    return [row for row in rows if period.contains(row.get(field))]


def daily_series(rows: Iterable[dict], period: DateRange, *, date_field: str, value) -> list[float]:
    """
    One bucket per day of period.

    value is a column name or a callable(row) -> number; rows outside the
    period are ignored.
    """
    start = period.start
    buckets = [0.0] * len(period.days())
    getter = value if callable(value) else (lambda row: row.get(value))
    for row in rows:
        day = to_day(row.get(date_field))
        if day is None or not period.contains(day):
            continue
        buckets[(day - start).days] += amount(getter(row))
    return buckets


def amount(value) -> float:
    """Numeric cell to float; missing or non-numeric counts as 0."""
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
