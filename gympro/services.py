from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from .analysis import ProgressSummary, progress_summary
from .config import get_config
from .metrics import exercise_series, records_to_dataframe, total_strength_series
from .models import (
    ValidationError,
    WorkoutSet,
    new_set_id,
    parse_iso_date,
    parse_records,
    parse_set_entries,
)
from .split import WEEKDAYS


@dataclass(frozen=True)
class LogResult:
    """Structured outcome of parsing log arguments."""

    sets: tuple[WorkoutSet, ...]

    @property
    def exercise(self) -> str:
        return self.sets[0].exercise

    @property
    def confirmation(self) -> str:
        first = self.sets[0]
        noun = "set" if len(self.sets) == 1 else "sets"
        return f"[{first.day}] Logged {len(self.sets)} {noun} of {first.exercise} on {first.date.isoformat()}."

    @property
    def verbose_tokens(self) -> list[str]:
        return [f"#{record.set_number}: {record.reps} x {record.weight:g} kg (id {record.id})" for record in self.sets]


@dataclass(frozen=True)
class ProgressReport:
    summaries: list[ProgressSummary]
    today: date
    total_sets: int
    date_range: tuple[date, date] | None
    rejected: tuple[tuple[int, str], ...] = ()
    filters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "today": self.today.isoformat(),
            "total_sets": self.total_sets,
            "date_range": [day.isoformat() for day in self.date_range] if self.date_range else None,
            "rejected": [{"index": index, "reason": reason} for index, reason in self.rejected],
            "filters": self.filters,
            "exercises": [summary.to_dict() for summary in self.summaries],
        }


def build_sets_from_inputs(
    *,
    exercise: str | None,
    sets_text: str | Sequence[str] | None,
    date_text: str | None,
    day: str | None,
    today: date,
) -> LogResult:
    """Convert CLI inputs into validated sets sharing one date and save action."""
    name = (exercise or "").strip()
    if not name:
        raise ValidationError("exercise is required.")
    set_date = parse_iso_date(date_text, field="date") if date_text else today
    day_label = (day or "").strip() or WEEKDAYS[set_date.weekday()]
    entries = parse_set_entries(sets_text, field="sets")
    sets = tuple(
        WorkoutSet(
            id=new_set_id(),
            date=set_date,
            exercise=name,
            reps=reps,
            weight=weight,
            day=day_label,
            set_number=index,
        )
        for index, (reps, weight) in enumerate(entries, start=1)
    )
    return LogResult(sets=sets)


def build_progress_report(
    records: Iterable[Any],
    *,
    today: date,
    exercises: Sequence[str] | None = None,
    rolling_days: int | None = None,
    filters: dict[str, Any] | None = None,
) -> ProgressReport:
    """Produce the per-exercise progress statistics for summary displays."""
    ingested = parse_records(records)
    valid = ingested.records
    summaries = progress_summary(
        valid,
        today,
        exercises=exercises,
        rolling_days=rolling_days or get_config().rolling_window_days,
    )
    date_range: tuple[date, date] | None = None
    if valid:
        dates = [record.date for record in valid]
        date_range = (min(dates), max(dates))
    return ProgressReport(
        summaries=summaries,
        today=today,
        total_sets=len(valid),
        date_range=date_range,
        rejected=ingested.rejected,
        filters=filters or {},
    )


def format_percent(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value:+.2f}%"


def format_point(record: WorkoutSet | None) -> str:
    if record is None:
        return "n/a"
    return f"{record.weight:g}kg x {record.reps} ({record.date.isoformat()})"


def render_progress_table(report: ProgressReport) -> str:
    """Render a fixed-width table for progress rows."""
    headers = (
        "exercise",
        "first",
        "latest",
        "avg14_kg",
        "avg14_reps",
        "n14",
        "d14_kg",
        "d14_reps",
        "month_kg",
        "month_reps",
        "n_month",
        "dmonth_kg",
        "dmonth_reps",
    )
    rows = [
        {
            "exercise": summary.exercise,
            "first": format_point(summary.first),
            "latest": format_point(summary.latest),
            "avg14_kg": f"{summary.avg14.avg_weight:.2f}",
            "avg14_reps": f"{summary.avg14.avg_reps:.2f}",
            "n14": str(summary.avg14.count),
            "d14_kg": format_percent(summary.pct14.weight),
            "d14_reps": format_percent(summary.pct14.reps),
            "month_kg": f"{summary.avg_month.avg_weight:.2f}",
            "month_reps": f"{summary.avg_month.avg_reps:.2f}",
            "n_month": str(summary.avg_month.count),
            "dmonth_kg": format_percent(summary.pct_month.weight),
            "dmonth_reps": format_percent(summary.pct_month.reps),
        }
        for summary in report.summaries
    ]
    return _render_table(headers, rows)


def render_history_table(history: Sequence[WorkoutSet]) -> str:
    headers = ("date", "day", "set", "reps", "weight", "id")
    rows = [
        {
            "date": record.date.isoformat(),
            "day": record.day or "",
            "set": str(record.set_number) if record.set_number is not None else "",
            "reps": str(record.reps),
            "weight": f"{record.weight:g}",
            "id": record.id,
        }
        for record in history
    ]
    return _render_table(headers, rows)


def render_volume_table(weekly: pd.DataFrame) -> str:
    """Render ``weekly_volume`` output, one row per week and exercise."""
    headers = ("week", "exercise", "sets", "reps", "volume")
    rows = [
        {
            "week": str(row.week_key),
            "exercise": str(row.exercise),
            "sets": str(int(row.sets)),
            "reps": str(int(row.total_reps)),
            "volume": f"{row.volume:g}",
        }
        for row in weekly.itertuples(index=False)
    ]
    return _render_table(headers, rows)


def generate_plots(
    records: Sequence[Any],
    *,
    output_dir: Path,
    today: date,
    exercise: str | None = None,
) -> list[Path]:
    """Chart one exercise's weight and reps, or total daily strength when no exercise is given."""

    try:
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:  # pragma: no cover - exercised via CLI
        raise RuntimeError("matplotlib is required to generate plots.") from exc

    output_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")

    if exercise:
        series = exercise_series(records, exercise, today)
        if series.empty:
            raise ValueError(f"No sets logged for {exercise!r}.")
        return [create_exercise_plot(series, exercise, output_dir / f"{_slugify(exercise)}_{timestamp}.png", plt)]

    series = total_strength_series(records, today)
    if series.empty:
        raise ValueError("No sets available to plot.")
    return [create_strength_plot(series, output_dir / f"total_strength_{timestamp}.png", plt)]


def create_exercise_plot(series: pd.DataFrame, exercise: str, destination: Path, plt: Any) -> Path:
    dates = series["date"].dt.date
    fig, ax_weight = plt.subplots()
    ax_weight.plot(dates, series["weight"], marker="o", linewidth=2, color="#6366F1", label="Avg weight (kg)")
    ax_weight.set_xlabel("Date")
    ax_weight.set_ylabel("Weight (kg)")
    ax_reps = ax_weight.twinx()
    ax_reps.plot(dates, series["reps"], marker="s", linewidth=1.5, color="#EC4899", label="Avg reps")
    ax_reps.set_ylabel("Reps")
    ax_weight.set_title(f"{exercise} Progress")
    ax_weight.grid(True, linestyle="--", alpha=0.3)
    fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(destination, dpi=150)
    plt.close(fig)
    return destination


def create_strength_plot(series: pd.DataFrame, destination: Path, plt: Any) -> Path:
    dates = series["date"].dt.date
    fig, ax = plt.subplots()
    ax.plot(dates, series["strength"], marker="o", linewidth=2, color="#1F3C88", label="Total strength")
    ax.set_title("Total Strength (kg x reps per day)")
    ax.set_xlabel("Date")
    ax.set_ylabel("Volume")
    ax.grid(True, linestyle="--", alpha=0.3)
    fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(destination, dpi=150)
    plt.close(fig)
    return destination


def build_export_dataframe(records: Sequence[Any]) -> pd.DataFrame:
    """Prepare a DataFrame ready for CSV export."""
    df = records_to_dataframe(records)
    if df.empty:
        return df
    export_df = df.copy()
    export_df["date"] = export_df["date"].dt.date
    export_df["volume"] = export_df["volume"].round(2)
    return export_df


def load_seed_payload(source: Path) -> list[dict[str, Any]]:
    """Load seed records from disk."""
    if not source.exists():
        raise FileNotFoundError(f"Seed file not found: {source}")

    raw_text = source.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        raise ValueError("Seed file is not valid JSON.") from exc

    if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
        raise ValueError("Seed data must be a JSON list of set objects.")
    return payload


def _render_table(headers: Sequence[str], rows: Sequence[Mapping[str, str]]) -> str:
    widths = {key: len(key) for key in headers}
    for row in rows:
        for key in headers:
            widths[key] = max(widths[key], len(row[key]))

    def _format_line(values: Mapping[str, str]) -> str:
        return "  ".join(values[key].rjust(widths[key]) for key in headers)

    header_line = "  ".join(key.upper().rjust(widths[key]) for key in headers)
    body = "\n".join(_format_line(row) for row in rows)
    return "\n".join(filter(None, [header_line, body]))


def _slugify(value: str) -> str:
    cleaned = "".join(char.lower() if char.isalnum() else "_" for char in value.strip())
    slug = "_".join(token for token in cleaned.split("_") if token)
    return slug or "exercise"
