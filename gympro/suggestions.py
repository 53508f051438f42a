from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Optional

from .analysis import STATUS_INSUFFICIENT, STATUS_OK, order_history, record_point
from .config import SuggestionThresholds, get_config
from .models import WorkoutSet, parse_iso_date, round2

ACTION_INCREASE = "increase"
ACTION_HOLD = "hold"
ACTION_MAINTAIN = "maintain"


@dataclass(frozen=True)
class Suggestion:
    status: str
    action: Optional[str] = None
    suggested_weight: Optional[float] = None
    weight_change: Optional[float] = None
    latest: Optional[WorkoutSet] = None
    previous: Optional[WorkoutSet] = None
    message: str = "Not enough data: log at least two sets first."

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "action": self.action,
            "suggested_weight": self.suggested_weight,
            "weight_change": self.weight_change,
            "latest": record_point(self.latest),
            "previous": record_point(self.previous),
            "message": self.message,
        }


def suggest_next(
    history: Iterable[Any],
    today: Any = None,
    *,
    policy: SuggestionThresholds | None = None,
) -> Suggestion:
    """
    Recommend the load for the next session from the two most recent sets.

    Reps at or above ``increase_at_reps`` add ``increment_kg``; reps at or below
    ``hold_at_reps`` keep the weight and chase reps; anything between maintains.
    """
    policy = policy or get_config().suggestions
    ordered = order_history(history)
    if today is not None:
        cutoff = parse_iso_date(today, field="today")
        ordered = tuple(record for record in ordered if record.date <= cutoff)
    if len(ordered) < 2:
        return Suggestion(status=STATUS_INSUFFICIENT, latest=ordered[-1] if ordered else None)

    previous, latest = ordered[-2], ordered[-1]
    weight_change = round2(latest.weight - previous.weight)

    if latest.reps >= policy.increase_at_reps:
        target = round2(latest.weight + policy.increment_kg)
        return Suggestion(
            status=STATUS_OK,
            action=ACTION_INCREASE,
            suggested_weight=target,
            weight_change=weight_change,
            latest=latest,
            previous=previous,
            message=(
                f"{latest.reps} reps at {latest.weight:g} kg: "
                f"increase to {target:g} kg (+{policy.increment_kg:g} kg)."
            ),
        )
    if latest.reps <= policy.hold_at_reps:
        return Suggestion(
            status=STATUS_OK,
            action=ACTION_HOLD,
            suggested_weight=latest.weight,
            weight_change=weight_change,
            latest=latest,
            previous=previous,
            message=f"Only {latest.reps} reps: hold {latest.weight:g} kg and build reps.",
        )
    return Suggestion(
        status=STATUS_OK,
        action=ACTION_MAINTAIN,
        suggested_weight=latest.weight,
        weight_change=weight_change,
        latest=latest,
        previous=previous,
        message=f"Maintain {latest.weight:g} kg and aim for {policy.increase_at_reps} reps.",
    )
