"""
Date windows shared by the aggregator and the week bucketing.

Weeks are Jan-1 anchored: week ``n`` of a year covers day-of-year
``7(n-1)+1`` to ``7n``. Week 1 always starts on January 1 whatever its
weekday, and the last week of a year (53) is one or two days long.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any

from .models import ValidationError, parse_iso_date

DEFAULT_ROLLING_DAYS = 14


class WindowKind(str, Enum):
    ROLLING = "rolling14"
    CALENDAR_MONTH = "calendarMonth"
    WEEKLY = "weekly"
    ALL_TIME = "allTime"

    @classmethod
    def parse(cls, value: Any) -> "WindowKind":
        if isinstance(value, WindowKind):
            return value
        text = str(value or "").strip().lower().replace("-", "").replace("_", "")
        kind = _KIND_ALIASES.get(text)
        if kind is None:
            choices = ", ".join(item.value for item in cls)
            raise ValidationError(f"window must be one of {choices}; received {value!r}.")
        return kind


_KIND_ALIASES = {
    "rolling14": WindowKind.ROLLING,
    "rolling": WindowKind.ROLLING,
    "14d": WindowKind.ROLLING,
    "calendarmonth": WindowKind.CALENDAR_MONTH,
    "month": WindowKind.CALENDAR_MONTH,
    "weekly": WindowKind.WEEKLY,
    "week": WindowKind.WEEKLY,
    "alltime": WindowKind.ALL_TIME,
    "all": WindowKind.ALL_TIME,
}


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar-date range."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    @property
    def is_empty(self) -> bool:
        return self.start > self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def week_number(day: date) -> int:
    return (day.timetuple().tm_yday - 1) // 7 + 1


def week_key(day: Any) -> str:
    """``"{year}-{weekNumber}"``; the year prefix keeps equal week numbers apart."""
    parsed = parse_iso_date(day)
    return f"{parsed.year}-{week_number(parsed)}"


def week_key_order(key: str) -> tuple[int, int]:
    """Chronological sort key for week keys (``"2025-10"`` sorts after ``"2025-9"``)."""
    year_text, _, week_text = key.partition("-")
    return int(year_text), int(week_text)


def week_bounds(day: Any) -> DateWindow:
    """The Jan-1-anchored week containing ``day``, clipped at December 31."""
    parsed = parse_iso_date(day)
    start = date(parsed.year, 1, 1) + timedelta(weeks=week_number(parsed) - 1)
    end = min(start + timedelta(days=6), date(parsed.year, 12, 31))
    return DateWindow(start, end)


def resolve_window(kind: Any, today: Any, *, rolling_days: int = DEFAULT_ROLLING_DAYS) -> DateWindow:
    """Current window of ``kind`` ending on ``today`` (inclusive)."""
    kind = WindowKind.parse(kind)
    today = parse_iso_date(today, field="today")
    if kind is WindowKind.ROLLING:
        return DateWindow(today - timedelta(days=_positive(rolling_days) - 1), today)
    if kind is WindowKind.CALENDAR_MONTH:
        return DateWindow(today.replace(day=1), today)
    if kind is WindowKind.WEEKLY:
        return DateWindow(week_bounds(today).start, today)
    return DateWindow(date.min, today)


def previous_window(
    kind: Any,
    today: Any,
    *,
    rolling_days: int = DEFAULT_ROLLING_DAYS,
) -> DateWindow | None:
    """
    The period immediately before the current one, or None for ``allTime``.

    Previous calendar months and week buckets are returned whole.
    """
    kind = WindowKind.parse(kind)
    current = resolve_window(kind, today, rolling_days=rolling_days)
    if kind is WindowKind.ROLLING:
        length = timedelta(days=_positive(rolling_days))
        return DateWindow(current.start - length, current.start - timedelta(days=1))
    if kind is WindowKind.CALENDAR_MONTH:
        end = current.start - timedelta(days=1)
        return DateWindow(end.replace(day=1), end)
    if kind is WindowKind.WEEKLY:
        return week_bounds(current.start - timedelta(days=1))
    return None


def _positive(days: int) -> int:
    if days < 1:
        raise ValidationError(f"rolling window must span at least one day; received {days}.")
    return days
