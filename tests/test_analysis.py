from __future__ import annotations

import copy
from datetime import date

import pytest

from gympro.analysis import (
    STATUS_INSUFFICIENT,
    STATUS_OK,
    MetricDelta,
    aggregate_window,
    average_in_range,
    compare_to_first,
    compare_to_previous_period,
    exercise_history,
    first_record,
    group_by_exercise,
    latest_record,
    order_history,
    percent_delta,
    progress_summary,
)

TODAY = date(2025, 9, 15)


def _set(record_id: str, day: str, reps: int, weight: float, *, exercise: str = "Bench Press", set_number=None):
    payload = {
        "id": record_id,
        "date": day,
        "exercise": exercise,
        "reps": reps,
        "weight": weight,
    }
    if set_number is not None:
        payload["set"] = set_number
    return payload


def _bench_history() -> list[dict[str, object]]:
    return [
        _set("b3", "2025-09-15", 10, 45),
        _set("b1", "2025-09-01", 8, 40),
        _set("b2", "2025-09-08", 8, 42.5),
    ]


def test_percent_delta_rounds_and_guards_zero_baseline() -> None:
    assert percent_delta(110, 100) == 10.0
    assert percent_delta(45, 40) == 12.5
    assert percent_delta(90, 100) == -10.0
    assert percent_delta(5, 0) is None
    assert percent_delta(None, 10) is None


def test_order_history_breaks_same_day_ties_by_set_then_input_order() -> None:
    records = [
        _set("x2", "2025-09-01", 8, 40, set_number=2),
        _set("later", "2025-09-02", 8, 40),
        _set("x1", "2025-09-01", 8, 40, set_number=1),
        _set("loose-a", "2025-09-01", 8, 40),
        _set("loose-b", "2025-09-01", 8, 40),
    ]
    assert [record.id for record in order_history(records)] == ["loose-a", "loose-b", "x1", "x2", "later"]


def test_group_by_exercise_uses_exact_names_and_sorts_each_history() -> None:
    records = _bench_history() + [
        _set("s1", "2025-09-03", 5, 100, exercise="Squats"),
        _set("s2", "2025-09-02", 5, 95, exercise="squats"),
    ]
    grouped = group_by_exercise(records)
    assert list(grouped) == ["Bench Press", "Squats", "squats"]
    assert [record.id for record in grouped["Bench Press"]] == ["b1", "b2", "b3"]
    assert [record.id for record in exercise_history(records, "Squats")] == ["s1"]


def test_malformed_records_are_excluded_from_analytics() -> None:
    records = _bench_history() + [{"id": "bad", "date": "2025-09-14", "exercise": "Bench Press", "reps": "x"}]
    assert len(order_history(records)) == 3


def test_first_and_latest_records() -> None:
    history = _bench_history() + [_set("future", "2025-10-01", 12, 50)]
    assert first_record(history).id == "b1"
    assert latest_record(history).id == "future"
    assert latest_record(history, TODAY).id == "b3"
    assert first_record([]) is None
    assert latest_record([], TODAY) is None


def test_average_in_range_is_inclusive_and_ignores_future_records() -> None:
    history = _bench_history() + [_set("future", "2025-09-16", 20, 100)]
    aggregate = average_in_range(history, "2025-09-02", TODAY)
    assert aggregate.count == 2
    assert aggregate.avg_weight == 43.75
    assert aggregate.avg_reps == 9.0

    empty = average_in_range(history, "2025-08-01", "2025-08-31")
    assert empty.is_empty
    assert empty.avg_weight == 0.0


def test_aggregate_window_by_kind() -> None:
    history = _bench_history()
    assert aggregate_window(history, "rolling14", TODAY).avg_weight == 43.75
    month = aggregate_window(history, "calendarMonth", TODAY)
    assert month.count == 3
    assert month.avg_weight == 42.5
    assert month.avg_reps == 8.67
    assert aggregate_window(history, "weekly", TODAY).avg_weight == 45.0
    assert aggregate_window(history, "allTime", TODAY).count == 3


def test_compare_to_first_uses_lifetime_baseline() -> None:
    delta = compare_to_first(_bench_history(), "rolling14", TODAY)
    assert delta == MetricDelta(weight=9.38, reps=12.5)


def test_compare_to_first_with_empty_window_is_not_minus_hundred() -> None:
    delta = compare_to_first(_bench_history(), "rolling14", date(2025, 11, 30))
    assert delta == MetricDelta()


def test_compare_to_previous_rolling_period() -> None:
    comparison = compare_to_previous_period(_bench_history(), "rolling14", TODAY)
    assert comparison.status == STATUS_OK
    assert comparison.previous.count == 1
    assert comparison.delta.weight == 9.38
    assert comparison.delta.reps == 12.5
    assert comparison.to_dict()["previous_window"] == {"start": "2025-08-19", "end": "2025-09-01"}


def test_compare_to_previous_weekly_period() -> None:
    comparison = compare_to_previous_period(_bench_history(), "weekly", TODAY)
    assert comparison.status == STATUS_OK
    assert comparison.delta.weight == 5.88
    assert comparison.delta.reps == 25.0


def test_compare_to_previous_period_reports_insufficient_data() -> None:
    month = compare_to_previous_period(_bench_history(), "calendarMonth", TODAY)
    assert month.status == STATUS_INSUFFICIENT
    assert month.delta == MetricDelta()

    all_time = compare_to_previous_period(_bench_history(), "allTime", TODAY)
    assert all_time.status == STATUS_INSUFFICIENT
    assert all_time.previous_window is None
    assert all_time.to_dict()["previous_window"] is None


def test_progress_summary_for_bench_press() -> None:
    (summary,) = progress_summary(_bench_history(), TODAY)
    assert summary.exercise == "Bench Press"
    assert summary.first.id == "b1"
    assert summary.latest.id == "b3"
    assert summary.avg14.avg_weight == 43.75
    assert summary.avg14.avg_reps == 9.0
    assert summary.pct14 == MetricDelta(weight=9.38, reps=12.5)
    assert summary.avg_month.avg_weight == 42.5
    assert summary.pct_month.weight == 6.25
    assert summary.pct_month.reps == pytest.approx(8.375, abs=0.01)


def test_progress_summary_includes_requested_exercises_without_history() -> None:
    summaries = progress_summary(_bench_history(), TODAY, exercises=["Bench Press", "Dips"])
    assert [summary.exercise for summary in summaries] == ["Bench Press", "Dips"]
    dips = summaries[1].to_dict()
    assert dips["first"] is None
    assert dips["avg14"] == {"count": 0, "avg_reps": 0.0, "avg_weight": 0.0}
    assert dips["pct14"] == {"weight": None, "reps": None}


def test_progress_summary_respects_rolling_length() -> None:
    (summary,) = progress_summary(_bench_history(), TODAY, rolling_days=1)
    assert summary.avg14.count == 1
    assert summary.pct14 == MetricDelta(weight=12.5, reps=25.0)


def test_zero_weight_baseline_gives_no_weight_delta() -> None:
    history = [
        _set("p1", "2025-09-01", 10, 0, exercise="Plank"),
        _set("p2", "2025-09-10", 12, 0, exercise="Plank"),
    ]
    (summary,) = progress_summary(history, TODAY)
    assert summary.pct14.weight is None
    assert summary.pct14.reps == 20.0


@pytest.mark.parametrize(
    ("current", "baseline"),
    [
        (40, 1e-320),
        (1e308, 1e-10),
        (-1e308, 1e-10),
        (float("nan"), 10),
        (10, float("inf")),
    ],
)
def test_percent_delta_never_returns_inf_or_nan(current: float, baseline: float) -> None:
    assert percent_delta(current, baseline) is None


def test_subnormal_first_weight_gives_no_weight_delta() -> None:
    history = [_set("tiny", "2025-09-01", 8, 1e-320), _set("real", "2025-09-10", 10, 40)]
    (summary,) = progress_summary(history, TODAY)
    assert summary.pct14.weight is None
    assert summary.pct14.reps == 25.0
    assert summary.pct_month.weight is None
    assert summary.avg_month.avg_weight == 20.0


def test_average_of_values_near_float_max_stays_finite() -> None:
    history = [_set("a", "2025-09-10", 8, 1.7e308), _set("b", "2025-09-11", 8, 1.7e308)]
    aggregate = average_in_range(history, "2025-09-01", TODAY)
    assert aggregate.count == 2
    assert aggregate.avg_weight == 1.7e308


def test_oversized_reps_are_excluded_instead_of_crashing() -> None:
    history = [_set("huge", "2025-09-10", 10**400, 40), _set("ok", "2025-09-11", 8, 40)]
    aggregate = average_in_range(history, "2025-09-01", TODAY)
    assert aggregate.count == 1
    assert aggregate.avg_reps == 8.0


def test_exercise_names_are_not_trimmed_or_folded() -> None:
    records = [
        _set("a", "2025-09-01", 8, 40),
        _set("b", "2025-09-02", 8, 40, exercise="Bench Press "),
        _set("c", "2025-09-03", 8, 40, exercise="bench press"),
    ]
    grouped = group_by_exercise(records)
    assert sorted(grouped) == sorted(["Bench Press", "Bench Press ", "bench press"])
    assert [record.id for record in exercise_history(records, "Bench Press")] == ["a"]


def test_average_in_range_leaves_input_untouched_and_repeats() -> None:
    history = _bench_history()
    snapshot = copy.deepcopy(history)
    first = average_in_range(history, "2025-09-01", TODAY)
    second = average_in_range(history, "2025-09-01", TODAY)
    assert first == second
    assert history == snapshot
