from __future__ import annotations

from datetime import date

from gympro.analysis import STATUS_INSUFFICIENT, STATUS_OK
from gympro.models import WorkoutSet
from gympro.weeks import bucket_by_day, bucket_by_week, scheduled_day, week_buckets, week_over_week


def _set(record_id: str, on: str, reps: int, weight: float, **extra: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "id": record_id,
        "date": on,
        "exercise": "Bench Press",
        "reps": reps,
        "weight": weight,
    }
    payload.update(extra)
    return payload


def test_bucket_by_week_orders_keys_chronologically() -> None:
    records = [
        _set("c", "2025-03-05", 8, 50),
        _set("a", "2025-02-26", 8, 45),
        _set("b", "2025-02-27", 6, 47.5),
    ]
    buckets = bucket_by_week(records)
    assert list(buckets) == ["2025-9", "2025-10"]
    assert [record.id for record in buckets["2025-9"]] == ["a", "b"]


def test_week_buckets_last_is_final_set_of_week() -> None:
    records = [
        _set("a2", "2025-09-01", 6, 42.5, set=2),
        _set("a1", "2025-09-01", 8, 40, set=1),
    ]
    (bucket,) = week_buckets(records)
    assert bucket.week_key == "2025-35"
    assert bucket.last.id == "a2"


def test_week_over_week_compares_last_sets() -> None:
    records = [
        _set("b1", "2025-09-01", 8, 40),
        _set("b2", "2025-09-08", 8, 42.5),
        _set("b3", "2025-09-15", 10, 45),
    ]
    comparison = week_over_week(records)
    assert comparison.status == STATUS_OK
    assert comparison.has_data
    assert comparison.previous_week == "2025-36"
    assert comparison.current_week == "2025-37"
    assert comparison.delta.weight == 5.88
    assert comparison.delta.reps == 25.0


def test_week_over_week_ignores_records_after_today() -> None:
    records = [
        _set("b1", "2025-09-01", 8, 40),
        _set("b2", "2025-09-08", 8, 42.5),
        _set("b3", "2025-09-15", 10, 45),
    ]
    comparison = week_over_week(records, today=date(2025, 9, 10))
    assert comparison.current_week == "2025-36"
    assert comparison.delta.weight == 6.25
    assert comparison.delta.reps == 0.0


def test_week_over_week_needs_two_buckets() -> None:
    single = week_over_week([_set("a", "2025-09-01", 8, 40), _set("b", "2025-09-02", 9, 40)])
    assert single.status == STATUS_INSUFFICIENT
    assert not single.has_data
    assert single.current_week == "2025-35"
    assert single.to_dict()["delta"] == {"weight": None, "reps": None}

    empty = week_over_week([])
    assert empty.status == STATUS_INSUFFICIENT
    assert empty.current is None


def test_week_over_week_across_year_boundary() -> None:
    records = [_set("a", "2024-12-31", 8, 40), _set("b", "2025-01-02", 8, 44)]
    comparison = week_over_week(records)
    assert (comparison.previous_week, comparison.current_week) == ("2024-53", "2025-1")
    assert comparison.delta.weight == 10.0


def test_scheduled_day_falls_back_to_weekday() -> None:
    explicit = WorkoutSet.from_mapping(_set("a", "2025-09-01", 8, 40, day="Thursday"))
    implicit = WorkoutSet.from_mapping(_set("b", "2025-09-01", 8, 40))
    assert scheduled_day(explicit) == "Thursday"
    assert scheduled_day(implicit) == "Monday"


def test_bucket_by_day_nests_weeks_under_each_day() -> None:
    records = [
        _set("m1", "2025-09-01", 8, 40, day="Monday"),
        _set("m2", "2025-09-08", 8, 42.5, day="Monday"),
        _set("t1", "2025-09-04", 10, 30),
    ]
    by_day = bucket_by_day(records)
    assert list(by_day) == ["Monday", "Thursday"]
    assert list(by_day["Monday"]) == ["2025-35", "2025-36"]
    assert [record.id for record in by_day["Thursday"]["2025-36"]] == ["t1"]
