from __future__ import annotations

from datetime import date

import pytest

from gympro.models import (
    ValidationError,
    WorkoutSet,
    coerce_sets,
    parse_iso_date,
    parse_records,
    parse_set_entries,
    round2,
)


def _raw(**overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "id": "abc123",
        "date": "2025-09-01",
        "day": "Monday",
        "exercise": "Bench Press",
        "set": 1,
        "reps": 8,
        "weight": 40,
    }
    record.update(overrides)
    return record


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (43.75, 43.75),
        (1.005, 1.01),
        (2.675, 2.68),
        (-2.345, -2.35),
        (10.000000000000002, 10.0),
        (8.666666666666666, 8.67),
        (0, 0.0),
        (1e20, 1e20),
        (1.7e308, 1.7e308),
    ],
)
def test_round2_rounds_half_away_from_zero(value: float, expected: float) -> None:
    assert round2(value) == expected


def test_round2_rejects_non_finite_values() -> None:
    with pytest.raises(ValueError):
        round2(float("inf"))


def test_parse_iso_date_accepts_dates_and_strings() -> None:
    assert parse_iso_date("2025-09-01") == date(2025, 9, 1)
    assert parse_iso_date(date(2025, 9, 1)) == date(2025, 9, 1)
    with pytest.raises(ValidationError):
        parse_iso_date("01/09/2025")
    with pytest.raises(ValidationError):
        parse_iso_date(None)


def test_from_mapping_round_trips_persisted_shape() -> None:
    record = WorkoutSet.from_mapping(_raw())
    assert record.date == date(2025, 9, 1)
    assert record.set_number == 1
    assert record.to_dict() == _raw()


def test_from_mapping_tolerates_missing_optional_fields() -> None:
    payload = _raw()
    del payload["day"]
    del payload["set"]
    record = WorkoutSet.from_mapping(payload)
    assert record.day is None
    assert record.set_number is None
    assert "day" not in record.to_dict()
    assert "set" not in record.to_dict()


def test_from_mapping_coerces_numeric_text() -> None:
    record = WorkoutSet.from_mapping(_raw(reps="10", weight="42.5", set="2"))
    assert record.reps == 10
    assert record.weight == pytest.approx(42.5)
    assert record.set_number == 2


@pytest.mark.parametrize(
    "overrides",
    [
        {"date": None},
        {"date": "not-a-date"},
        {"exercise": ""},
        {"exercise": None},
        {"reps": "eight"},
        {"reps": 8.5},
        {"reps": -1},
        {"reps": True},
        {"reps": 10**400},
        {"weight": "1e400"},
        {"weight": None},
        {"weight": "heavy"},
        {"weight": float("nan")},
        {"id": ""},
    ],
)
def test_from_mapping_rejects_malformed_records(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        WorkoutSet.from_mapping(_raw(**overrides))


def test_parse_records_reports_rejections_without_raising() -> None:
    raw = [
        _raw(id="a"),
        _raw(id="b", reps="lots"),
        "not a record",
        _raw(id="a", date="2025-09-02"),
        _raw(id="c", day=None),
    ]
    result = parse_records(raw)
    assert [record.id for record in result.records] == ["a", "c"]
    assert [index for index, _ in result.rejected] == [1, 2, 3]
    assert "duplicate id" in result.rejected[-1][1]
    assert not result.ok


def test_coerce_sets_drops_malformed_entries_quietly() -> None:
    built = WorkoutSet.from_mapping(_raw(id="z"))
    sets = coerce_sets([built, _raw(id="y"), _raw(id="x", exercise="  ")])
    assert [record.id for record in sets] == ["z", "y"]


def test_parse_set_entries_reads_reps_by_weight() -> None:
    assert parse_set_entries("8x40, 8 x 42.5, 6X45kg") == [(8, 40.0), (8, 42.5), (6, 45.0)]
    assert parse_set_entries("12") == [(12, 0.0)]
    with pytest.raises(ValidationError):
        parse_set_entries("")
    with pytest.raises(ValidationError):
        parse_set_entries("8x-5")


def test_from_mapping_keeps_exercise_name_verbatim() -> None:
    record = WorkoutSet.from_mapping(_raw(exercise="Bench Press "))
    assert record.exercise == "Bench Press "
