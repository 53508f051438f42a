from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

WEEKDAYS: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


@dataclass(frozen=True)
class SplitDay:
    """One scheduled day of the weekly split."""

    day: str
    muscle: str
    exercises: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_rest(self) -> bool:
        return not self.exercises

    def to_dict(self) -> dict[str, object]:
        return {"day": self.day, "muscle": self.muscle, "exercises": list(self.exercises)}


DEFAULT_SPLIT: tuple[SplitDay, ...] = (
    SplitDay(
        "Monday",
        "Chest + Triceps + Abs",
        (
            "Bench Press",
            "Incline DB Press",
            "Dips",
            "Pushdowns",
            "Overhead DB Extension",
            "Plank",
            "Deadbug",
            "Woodchoppers",
        ),
    ),
    SplitDay(
        "Tuesday",
        "Back + Biceps",
        ("Pull-Ups", "Barbell Rows", "Seated Rows", "Barbell Curls", "DB Curls", "Concentration Curl"),
    ),
    SplitDay(
        "Wednesday",
        "Legs + Shoulders",
        (
            "Squats",
            "RDLs",
            "Lunges",
            "OHP",
            "Lateral Raises",
            "Rear Delt Flys",
            "Hanging Leg Raise",
            "Russian Twists",
        ),
    ),
    SplitDay(
        "Thursday",
        "Chest + Triceps",
        ("Incline Bench", "Chest Flys", "Push-Ups", "Skullcrushers", "Rope Pushdowns", "Dips"),
    ),
    SplitDay("Friday", "Rest"),
    SplitDay(
        "Saturday",
        "Back + Biceps",
        (
            "Lat Pulldown",
            "T-Bar Row",
            "DB Row",
            "Incline DB Curl",
            "Hammer Curl",
            "Cable Curl",
            "Decline Crunch",
            "V-Ups",
            "Cable Crunch",
        ),
    ),
    SplitDay(
        "Sunday",
        "Legs + Shoulders",
        (
            "Leg Press",
            "Leg Extension",
            "Ham Curl",
            "Arnold Press",
            "Front Raise",
            "Cable Lateral Raise",
            "Stretch & Mobility",
        ),
    ),
)


def load_split() -> tuple[SplitDay, ...]:
    """Return the configured split, falling back to the built-in week."""
    from .config import get_config

    return get_config().split


def find_day(day: str, split: Sequence[SplitDay] | None = None) -> SplitDay | None:
    """Look up a split day by name, ignoring case and surrounding whitespace."""
    wanted = (day or "").strip().lower()
    for entry in split if split is not None else load_split():
        if entry.day.lower() == wanted:
            return entry
    return None


def exercises_for_day(day: str, split: Sequence[SplitDay] | None = None) -> tuple[str, ...]:
    entry = find_day(day, split)
    return entry.exercises if entry else ()


def day_for_exercise(exercise: str, split: Sequence[SplitDay] | None = None) -> str | None:
    """First scheduled day listing ``exercise`` (exact, case-sensitive match)."""
    for entry in split if split is not None else load_split():
        if exercise in entry.exercises:
            return entry.day
    return None


def all_exercises(split: Sequence[SplitDay] | None = None) -> list[str]:
    """Every exercise in split order, without duplicates."""
    seen: dict[str, None] = {}
    for entry in split if split is not None else load_split():
        for name in entry.exercises:
            seen.setdefault(name, None)
    return list(seen)
