from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from .analysis import (
    STATUS_INSUFFICIENT,
    STATUS_OK,
    MetricDelta,
    metric_delta,
    order_history,
    record_point,
)
from .models import WorkoutSet, parse_iso_date
from .periods import week_key, week_key_order
from .split import WEEKDAYS

WeekMap = Dict[str, Tuple[WorkoutSet, ...]]


@dataclass(frozen=True)
class WeekBucket:
    week_key: str
    records: Tuple[WorkoutSet, ...]

    @property
    def last(self) -> WorkoutSet:
        return self.records[-1]

    def to_dict(self) -> dict[str, Any]:
        return {"week_key": self.week_key, "records": [record.to_dict() for record in self.records]}


@dataclass(frozen=True)
class WeekComparison:
    """Last set of the latest week versus last set of the week before."""

    status: str
    previous_week: Optional[str] = None
    current_week: Optional[str] = None
    previous: Optional[WorkoutSet] = None
    current: Optional[WorkoutSet] = None
    delta: MetricDelta = MetricDelta()

    @property
    def has_data(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "previous_week": self.previous_week,
            "current_week": self.current_week,
            "previous": record_point(self.previous),
            "current": record_point(self.current),
            "delta": self.delta.to_dict(),
        }


def bucket_by_week(history: Iterable[Any]) -> WeekMap:
    """
    Group records by week key.

    Buckets come out in chronological order and keep date order inside.
    """
    grouped: dict[str, list[WorkoutSet]] = {}
    for record in order_history(history):
        grouped.setdefault(week_key(record.date), []).append(record)
    return {key: tuple(grouped[key]) for key in sorted(grouped, key=week_key_order)}


def week_buckets(history: Iterable[Any]) -> list[WeekBucket]:
    return [WeekBucket(key, records) for key, records in bucket_by_week(history).items()]


def scheduled_day(record: WorkoutSet) -> str:
    """The split day a set was logged under, else the weekday of its date."""
    return record.day or WEEKDAYS[record.date.weekday()]


def bucket_by_day(records: Iterable[Any]) -> Dict[str, WeekMap]:
    """Scheduled day → week key → records, days in the order first seen by date."""
    by_day: dict[str, list[WorkoutSet]] = {}
    for record in order_history(records):
        by_day.setdefault(scheduled_day(record), []).append(record)
    return {day: bucket_by_week(day_records) for day, day_records in by_day.items()}


def week_over_week(history: Iterable[Any], today: Any = None) -> WeekComparison:
    """
    Compare the final set of the two most recent week buckets.

    With fewer than two buckets the result is ``insufficient_data``, which is
    distinct from a computed 0% change.
    """
    ordered = order_history(history)
    if today is not None:
        cutoff = parse_iso_date(today, field="today")
        ordered = tuple(record for record in ordered if record.date <= cutoff)

    buckets = week_buckets(ordered)
    if len(buckets) < 2:
        return WeekComparison(
            status=STATUS_INSUFFICIENT,
            current_week=buckets[-1].week_key if buckets else None,
            current=buckets[-1].last if buckets else None,
        )

    previous_bucket, current_bucket = buckets[-2], buckets[-1]
    previous, current = previous_bucket.last, current_bucket.last
    return WeekComparison(
        status=STATUS_OK,
        previous_week=previous_bucket.week_key,
        current_week=current_bucket.week_key,
        previous=previous,
        current=current,
        delta=metric_delta(current.weight, current.reps, previous.weight, previous.reps),
    )
