from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Optional

LOGGER = logging.getLogger(__name__)

__all__ = [
    "parse_iso_date",
    "coerce_number",
    "round2",
    "new_set_id",
    "parse_set_entries",
    "WorkoutSet",
    "IngestResult",
    "parse_records",
    "coerce_sets",
    "ValidationError",
]

_CENT = Decimal("0.01")
# floats this large carry no fractional digits
_WHOLE_ONLY = 2.0**53


class ValidationError(ValueError):
    """Raised when user-supplied data cannot be normalised safely."""


def parse_iso_date(value: Any, *, field: str = "date") -> date:
    """
    Parse user-supplied ISO-8601 dates.

    Accepts `datetime.date`, `datetime.datetime`, or strings. Raises `ValidationError`
    with a friendlier message if the payload cannot be parsed.
    """
    if isinstance(value, date):
        return value if not isinstance(value, datetime) else value.date()

    if not isinstance(value, str):
        raise ValidationError(
            f"{field} must be provided as YYYY-MM-DD text; received {value!r}."
        )

    candidate = value.strip()
    if not candidate:
        raise ValidationError(f"{field} cannot be empty.")

    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValidationError(
            f"{field} must be a valid ISO date (YYYY-MM-DD); received {candidate!r}."
        ) from exc

    return parsed.date()


def coerce_number(
    value: Any,
    *,
    field: str = "value",
    minimum: float | None = None,
    allow_float: bool = True,
) -> float:
    """
    Convert arbitrary input into a finite float with guardrails.

    `minimum` is inclusive. When `allow_float` is False, the coerced number must be whole.
    """
    if value is None:
        raise ValidationError(f"{field} is required.")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number; received {value!r}.")

    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError as exc:
            raise ValidationError(f"{field} is too large; received {value!r}.") from exc
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} is required.")
        try:
            number = float(stripped)
        except ValueError as exc:
            raise ValidationError(f"{field} must be a number; received {value!r}.") from exc
    else:
        raise ValidationError(f"{field} must be a number; received {value!r}.")

    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number; received {value!r}.")

    if not allow_float and number != round(number):
        raise ValidationError(f"{field} must be an integer; received {value!r}.")

    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be >= {minimum}; received {number}.")

    return number


def round2(value: float) -> float:
    """
    Round to two decimals, halves away from zero.

    The shortest repr of the float is rounded, so ``round2(1.005) == 1.01`` and
    ``round2(-2.345) == -2.35``.
    """
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"Cannot round non-finite value {value!r}.")
    if abs(number) >= _WHOLE_ONLY:
        return number + 0.0
    quantized = Decimal(repr(number)).quantize(_CENT, rounding=ROUND_HALF_UP)
    return float(quantized) + 0.0


def new_set_id() -> str:
    return uuid.uuid4().hex[:12]


def parse_set_entries(payload: Any, *, field: str = "sets") -> list[tuple[int, float]]:
    """
    Parse ``"8x40, 8x42.5, 6x45"`` into ``[(reps, weight), ...]``.

    A bare rep count (``"12"``) means bodyweight, i.e. 0 kg.
    """
    if payload is None:
        raise ValidationError(f"{field} is required.")
    if isinstance(payload, str):
        chunks = [chunk.strip() for chunk in payload.split(",")]
    elif isinstance(payload, (list, tuple)):
        chunks = [str(chunk).strip() for chunk in payload]
    else:
        raise ValidationError(f"{field} must be comma-separated text; received {payload!r}.")

    entries: list[tuple[int, float]] = []
    for index, chunk in enumerate((chunk for chunk in chunks if chunk), start=1):
        reps_text, sep, weight_text = chunk.lower().partition("x")
        reps = coerce_number(reps_text, field=f"{field}[{index}].reps", minimum=0, allow_float=False)
        weight = (
            coerce_number(weight_text.replace("kg", ""), field=f"{field}[{index}].weight", minimum=0)
            if sep
            else 0.0
        )
        entries.append((int(reps), weight))

    if not entries:
        raise ValidationError(f"{field} must contain at least one REPSxWEIGHT entry.")
    return entries


@dataclass(frozen=True)
class WorkoutSet:
    """A single logged set; the atomic record of the log."""

    id: str
    date: date
    exercise: str
    reps: int
    weight: float
    day: Optional[str] = None
    set_number: Optional[int] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "WorkoutSet":
        """Validate a persisted record (``{id, date, day, exercise, set, reps, weight}``)."""
        if not isinstance(payload, Mapping):
            raise ValidationError(f"record must be a mapping; received {type(payload).__name__}.")

        record_id = str(payload.get("id") or "").strip()
        if not record_id:
            raise ValidationError("id is required.")

        exercise = payload.get("exercise")
        if not isinstance(exercise, str) or not exercise.strip():
            raise ValidationError("exercise is required.")

        record_date = parse_iso_date(payload.get("date"), field="date")
        reps = coerce_number(payload.get("reps"), field="reps", minimum=0, allow_float=False)
        weight = coerce_number(payload.get("weight"), field="weight", minimum=0)

        day_raw = payload.get("day")
        day = day_raw.strip() if isinstance(day_raw, str) and day_raw.strip() else None

        return cls(
            id=record_id,
            date=record_date,
            exercise=exercise,
            reps=int(reps),
            weight=weight,
            day=day,
            set_number=_optional_ordinal(payload.get("set")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Make the record JSON serialisable in its persisted shape."""
        payload: dict[str, Any] = {
            "id": self.id,
            "date": self.date.isoformat(),
            "exercise": self.exercise,
            "reps": self.reps,
            "weight": self.weight,
        }
        if self.day:
            payload["day"] = self.day
        if self.set_number is not None:
            payload["set"] = self.set_number
        return payload

    @property
    def volume(self) -> float:
        return self.reps * self.weight


@dataclass(frozen=True)
class IngestResult:
    """Records accepted at the storage boundary plus what was turned away."""

    records: tuple[WorkoutSet, ...]
    rejected: tuple[tuple[int, str], ...] = ()

    @property
    def ok(self) -> bool:
        return not self.rejected


def parse_records(raw: Iterable[Any]) -> IngestResult:
    """
    Validate a raw record list, keeping every well-formed entry.

    A malformed entry or a repeated id is reported in ``rejected`` as
    ``(index, reason)`` instead of aborting the whole load.
    """
    accepted: list[WorkoutSet] = []
    rejected: list[tuple[int, str]] = []
    seen_ids: set[str] = set()
    for index, item in enumerate(raw):
        try:
            record = item if isinstance(item, WorkoutSet) else WorkoutSet.from_mapping(item)
        except ValidationError as exc:
            LOGGER.warning("Skipping record #%d: %s", index, exc)
            rejected.append((index, str(exc)))
            continue
        if record.id in seen_ids:
            reason = f"duplicate id {record.id!r}"
            LOGGER.warning("Skipping record #%d: %s", index, reason)
            rejected.append((index, reason))
            continue
        seen_ids.add(record.id)
        accepted.append(record)
    return IngestResult(records=tuple(accepted), rejected=tuple(rejected))


def coerce_sets(records: Iterable[Any]) -> list[WorkoutSet]:
    """
    Lenient conversion used inside the analytics functions.

    Malformed entries are dropped quietly; uniqueness of ids is the store's concern.
    """
    sets: list[WorkoutSet] = []
    for item in records:
        if isinstance(item, WorkoutSet):
            sets.append(item)
            continue
        try:
            sets.append(WorkoutSet.from_mapping(item))
        except ValidationError as exc:
            LOGGER.debug("Excluding malformed record %r: %s", item, exc)
    return sets


def _optional_ordinal(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        coerced = coerce_number(value, field="set", minimum=1, allow_float=False)
    except ValidationError:
        return None
    return int(coerced)
