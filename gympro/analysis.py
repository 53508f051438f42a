from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional, Tuple

from .models import WorkoutSet, coerce_sets, parse_iso_date, round2
from .periods import (
    DEFAULT_ROLLING_DAYS,
    DateWindow,
    WindowKind,
    previous_window,
    resolve_window,
)

STATUS_OK = "ok"
STATUS_INSUFFICIENT = "insufficient_data"

History = Tuple[WorkoutSet, ...]
ExerciseMap = Dict[str, History]


@dataclass(frozen=True)
class WindowAggregate:
    count: int = 0
    avg_reps: float = 0.0
    avg_weight: float = 0.0

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "avg_reps": self.avg_reps, "avg_weight": self.avg_weight}


EMPTY_AGGREGATE = WindowAggregate()


@dataclass(frozen=True)
class MetricDelta:
    """Percentage change of weight and reps; None means no meaningful baseline."""

    weight: Optional[float] = None
    reps: Optional[float] = None

    def to_dict(self) -> dict[str, Optional[float]]:
        return {"weight": self.weight, "reps": self.reps}


@dataclass(frozen=True)
class PeriodComparison:
    kind: WindowKind
    current_window: DateWindow
    current: WindowAggregate
    previous_window: Optional[DateWindow]
    previous: WindowAggregate
    delta: MetricDelta
    status: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "status": self.status,
            "current_window": self.current_window.to_dict(),
            "current": self.current.to_dict(),
            "previous_window": self.previous_window.to_dict() if self.previous_window else None,
            "previous": self.previous.to_dict(),
            "delta": self.delta.to_dict(),
        }


@dataclass(frozen=True)
class ProgressSummary:
    exercise: str
    first: Optional[WorkoutSet]
    latest: Optional[WorkoutSet]
    avg14: WindowAggregate
    avg_month: WindowAggregate
    pct14: MetricDelta = field(default_factory=MetricDelta)
    pct_month: MetricDelta = field(default_factory=MetricDelta)

    def to_dict(self) -> dict[str, Any]:
        return {
            "exercise": self.exercise,
            "first": record_point(self.first),
            "latest": record_point(self.latest),
            "avg14": self.avg14.to_dict(),
            "avg_month": self.avg_month.to_dict(),
            "pct14": self.pct14.to_dict(),
            "pct_month": self.pct_month.to_dict(),
        }


def record_point(record: Optional[WorkoutSet]) -> Optional[dict[str, Any]]:
    """``{date, weight, reps}`` view of a record, as charted."""
    if record is None:
        return None
    return {"date": record.date.isoformat(), "weight": record.weight, "reps": record.reps}


def order_history(records: Iterable[Any]) -> History:
    """
    Sort records chronologically.

    Same-day records are ordered by set ordinal (unset first), then by their
    position in the input.
    """
    return tuple(sorted(coerce_sets(records), key=_chronological))


def group_by_exercise(records: Iterable[Any]) -> ExerciseMap:
    """Partition records by exact exercise name, each history in date order."""
    grouped: dict[str, list[WorkoutSet]] = {}
    for record in coerce_sets(records):
        grouped.setdefault(record.exercise, []).append(record)
    return {
        name: tuple(sorted(grouped[name], key=_chronological))
        for name in sorted(grouped)
    }


def exercise_history(records: Iterable[Any], exercise: str) -> History:
    return order_history(record for record in coerce_sets(records) if record.exercise == exercise)


def average_in_range(history: Iterable[Any], start_date: Any, today: Any) -> WindowAggregate:
    """
    Mean reps and weight of the records dated ``start_date``..``today`` inclusive.

    Records after ``today`` are never counted. No match gives a zero aggregate.
    """
    window = DateWindow(parse_iso_date(start_date, field="start_date"), parse_iso_date(today, field="today"))
    return _aggregate(record for record in coerce_sets(history) if window.contains(record.date))


def aggregate_window(
    history: Iterable[Any],
    kind: Any,
    today: Any,
    *,
    rolling_days: int = DEFAULT_ROLLING_DAYS,
) -> WindowAggregate:
    window = resolve_window(kind, today, rolling_days=rolling_days)
    return average_in_range(history, window.start, window.end)


def first_record(history: Iterable[Any]) -> Optional[WorkoutSet]:
    """Chronologically first record (the lifetime baseline), or None."""
    ordered = order_history(history)
    return ordered[0] if ordered else None


def latest_record(history: Iterable[Any], today: Any = None) -> Optional[WorkoutSet]:
    """Most recent record, ignoring anything dated after ``today`` when given."""
    ordered = order_history(history)
    if today is not None:
        cutoff = parse_iso_date(today, field="today")
        ordered = tuple(record for record in ordered if record.date <= cutoff)
    return ordered[-1] if ordered else None


def percent_delta(current: Optional[float], baseline: Optional[float]) -> Optional[float]:
    """
    ``round2((current - baseline) / baseline * 100)``.

    None when the baseline is 0 or missing, or when the quotient is not a finite number.
    """
    if current is None or baseline is None or baseline == 0:
        return None
    try:
        raw = ((current - baseline) / baseline) * 100
    except (OverflowError, ZeroDivisionError):
        return None
    if not math.isfinite(raw):
        return None
    return round2(raw)


def metric_delta(
    current_weight: Optional[float],
    current_reps: Optional[float],
    baseline_weight: Optional[float],
    baseline_reps: Optional[float],
) -> MetricDelta:
    return MetricDelta(
        weight=percent_delta(current_weight, baseline_weight),
        reps=percent_delta(current_reps, baseline_reps),
    )


def compare_to_first(
    history: Iterable[Any],
    kind: Any,
    today: Any,
    *,
    rolling_days: int = DEFAULT_ROLLING_DAYS,
) -> MetricDelta:
    """Window aggregate versus the first-ever record of the exercise."""
    sets = coerce_sets(history)
    first = first_record(sets)
    aggregate = aggregate_window(sets, kind, today, rolling_days=rolling_days)
    return _delta_vs_first(aggregate, first)


def compare_to_previous_period(
    history: Iterable[Any],
    kind: Any,
    today: Any,
    *,
    rolling_days: int = DEFAULT_ROLLING_DAYS,
) -> PeriodComparison:
    """Window aggregate versus the same exercise's aggregate one period earlier."""
    kind = WindowKind.parse(kind)
    sets = coerce_sets(history)
    current_window = resolve_window(kind, today, rolling_days=rolling_days)
    earlier_window = previous_window(kind, today, rolling_days=rolling_days)

    current = average_in_range(sets, current_window.start, current_window.end)
    previous = (
        average_in_range(sets, earlier_window.start, earlier_window.end)
        if earlier_window is not None
        else EMPTY_AGGREGATE
    )

    if current.is_empty or previous.is_empty:
        delta = MetricDelta()
        status = STATUS_INSUFFICIENT
    else:
        delta = metric_delta(current.avg_weight, current.avg_reps, previous.avg_weight, previous.avg_reps)
        status = STATUS_OK

    return PeriodComparison(
        kind=kind,
        current_window=current_window,
        current=current,
        previous_window=earlier_window,
        previous=previous,
        delta=delta,
        status=status,
    )


def progress_summary(
    records: Iterable[Any],
    today: Any,
    *,
    exercises: Sequence[str] | None = None,
    rolling_days: int = DEFAULT_ROLLING_DAYS,
) -> list[ProgressSummary]:
    """
    Baseline, rolling and month-to-date averages per exercise.

    ``exercises`` adds names with no history yet (e.g. the weekly split) so they
    render as empty rows.
    """
    today = parse_iso_date(today, field="today")
    grouped = group_by_exercise(records)
    names = list(grouped)
    for name in exercises or ():
        if name not in grouped:
            names.append(name)

    summaries: list[ProgressSummary] = []
    for name in names:
        history = grouped.get(name, ())
        first = history[0] if history else None
        avg14 = aggregate_window(history, WindowKind.ROLLING, today, rolling_days=rolling_days)
        avg_month = aggregate_window(history, WindowKind.CALENDAR_MONTH, today)
        summaries.append(
            ProgressSummary(
                exercise=name,
                first=first,
                latest=latest_record(history, today),
                avg14=avg14,
                avg_month=avg_month,
                pct14=_delta_vs_first(avg14, first),
                pct_month=_delta_vs_first(avg_month, first),
            )
        )
    return summaries


def _delta_vs_first(aggregate: WindowAggregate, first: Optional[WorkoutSet]) -> MetricDelta:
    if first is None or aggregate.is_empty:
        return MetricDelta()
    return metric_delta(aggregate.avg_weight, aggregate.avg_reps, first.weight, first.reps)


def _aggregate(records: Iterable[WorkoutSet]) -> WindowAggregate:
    selected = list(records)
    if not selected:
        return EMPTY_AGGREGATE
    return WindowAggregate(
        count=len(selected),
        avg_reps=round2(_mean([record.reps for record in selected])),
        avg_weight=round2(_mean([record.weight for record in selected])),
    )


def _mean(values: list[float]) -> float:
    try:
        total = float(sum(values))
    except OverflowError:
        total = math.inf
    if math.isfinite(total):
        return total / len(values)
    # the running total overflowed; scale first so the mean stays finite
    return sum(value / len(values) for value in values)


def _chronological(record: WorkoutSet) -> tuple[date, int]:
    return record.date, record.set_number or 0
