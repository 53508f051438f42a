from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Optional

import typer

from .analysis import (
    STATUS_OK,
    compare_to_first,
    compare_to_previous_period,
    exercise_history,
    group_by_exercise,
)
from .config import as_dict as config_as_dict, get_config
from .metrics import weekly_volume
from .models import ValidationError, WorkoutSet, new_set_id, parse_iso_date, parse_records
from .periods import WindowKind, resolve_window
from .reports import generate_progress_report
from .services import (
    LogResult,
    build_export_dataframe,
    build_progress_report,
    build_sets_from_inputs,
    format_percent,
    format_point,
    generate_plots,
    load_seed_payload,
    render_history_table,
    render_progress_table,
    render_volume_table,
)
from .split import all_exercises, day_for_exercise, exercises_for_day, find_day, load_split
from .storage import (
    append_records,
    clear_records,
    delete_record,
    load_records,
    load_sets,
    logs_file,
    save_records,
)
from .suggestions import suggest_next
from .weeks import bucket_by_day, week_over_week

app = typer.Typer(help="Log gym sets against a weekly split and track progress per exercise.")


def _fail(message: str, *, code: int = 1) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=code)


@app.callback()
def main_callback(
    debug: bool = typer.Option(False, "--debug", help="Log engine decisions (skipped records, writes)."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def log(
    exercise: str = typer.Option(..., "--exercise", "-x", help="Exercise name (exact, case-sensitive)."),
    sets: str = typer.Option(
        ...,
        "--sets",
        "-s",
        help="Comma-separated REPSxKG entries (e.g. '8x40, 8x42.5, 6x45').",
    ),
    date_text: Optional[str] = typer.Option(
        None,
        "--date",
        "-d",
        help="Date of the sets in YYYY-MM-DD format (defaults to today).",
    ),
    day: Optional[str] = typer.Option(
        None,
        "--day",
        help="Split day the sets belong to (defaults to the weekday of --date).",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show each stored set."),
) -> None:
    """
    Log one or more sets of an exercise.

    Examples:
        python -m gympro log -x "Bench Press" -s "8x40, 8x40, 6x42.5"
        python -m gympro log -x Squats -s 5x80 --date 2025-09-03 --day Wednesday
    """
    try:
        result: LogResult = build_sets_from_inputs(
            exercise=exercise,
            sets_text=sets,
            date_text=date_text,
            day=day,
            today=date.today(),
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    _warn_if_off_split(result.exercise, result.sets[0].day)
    try:
        append_records(result.sets)
    except ValueError as exc:
        _fail(f"Could not store sets: {exc}")

    typer.echo(result.confirmation)
    if verbose:
        for token in result.verbose_tokens:
            typer.echo(" • " + token)


@app.command()
def summary(
    today: Optional[str] = typer.Option(None, "--today", help="Reference date (YYYY-MM-DD, defaults to today)."),
    exercise: list[str] = typer.Option([], "--exercise", "-x", help="Limit to these exercises (repeatable)."),
    include_split: bool = typer.Option(
        False,
        "--include-split",
        help="List every exercise of the weekly split, even without logged sets.",
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """
    Show first-session baseline, 14-day and month-to-date averages per exercise.
    """
    reference = _resolve_today(today)
    records = _read_records()
    wanted = [name.strip() for name in exercise if name.strip()]
    if wanted:
        records = [record for record in records if isinstance(record, dict) and record.get("exercise") in wanted]
    # an empty log still lists the weekly split
    extra = wanted or (all_exercises() if include_split or not records else None)

    report = build_progress_report(
        records,
        today=reference,
        exercises=extra,
        filters={"exercise": ", ".join(wanted)} if wanted else None,
    )
    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
        return
    if not report.summaries:
        typer.echo("No sets logged yet.")
        raise typer.Exit(code=0)

    typer.echo(render_progress_table(report))
    range_text = (
        f"{report.date_range[0].isoformat()} – {report.date_range[1].isoformat()}" if report.date_range else "n/a"
    )
    typer.echo(f"Totals: {report.total_sets} sets ({range_text}), reference date {reference.isoformat()}.")
    if report.rejected:
        typer.secho(
            f"Skipped {len(report.rejected)} malformed record(s); run with --debug for details.",
            fg=typer.colors.YELLOW,
        )


@app.command()
def history(
    exercise: str = typer.Option(..., "--exercise", "-x", help="Exercise to list."),
) -> None:
    """List every logged set of one exercise in date order."""
    sets = exercise_history(_read_records(), exercise)
    if not sets:
        typer.echo(f"No sets logged for {exercise}.")
        raise typer.Exit(code=0)
    typer.echo(render_history_table(sets))


@app.command()
def compare(
    exercise: str = typer.Option(..., "--exercise", "-x", help="Exercise to compare."),
    window: str = typer.Option(
        WindowKind.ROLLING.value,
        "--window",
        "-w",
        help="rolling14, calendarMonth, weekly or allTime.",
    ),
    baseline: str = typer.Option(
        "previous",
        "--baseline",
        "-b",
        case_sensitive=False,
        help="'previous' period or 'first' session.",
    ),
    today: Optional[str] = typer.Option(None, "--today", help="Reference date (YYYY-MM-DD, defaults to today)."),
) -> None:
    """
    Compare the current window against the previous period or the first session.

    Examples:
        python -m gympro compare -x "Bench Press" --window calendarMonth
        python -m gympro compare -x Squats --window rolling14 --baseline first
    """
    reference = _resolve_today(today)
    try:
        kind = WindowKind.parse(window)
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_name="window") from exc
    rolling_days = get_config().rolling_window_days
    history_sets = exercise_history(_read_records(), exercise)

    mode = baseline.strip().lower()
    if mode == "first":
        if not history_sets:
            typer.echo(f"No sets logged for {exercise}.")
            raise typer.Exit(code=0)
        current = resolve_window(kind, reference, rolling_days=rolling_days)
        delta = compare_to_first(history_sets, kind, reference, rolling_days=rolling_days)
        typer.echo(f"{exercise} [{kind.value}] {current.start.isoformat()} – {current.end.isoformat()}")
        typer.echo(f"First session: {format_point(history_sets[0])}")
        typer.echo(f"Change vs first: weight {format_percent(delta.weight)}, reps {format_percent(delta.reps)}")
        return
    if mode != "previous":
        raise typer.BadParameter("Baseline must be 'previous' or 'first'.", param_name="baseline")

    comparison = compare_to_previous_period(history_sets, kind, reference, rolling_days=rolling_days)
    current = comparison.current
    typer.echo(
        f"{exercise} [{kind.value}] current {comparison.current_window.start.isoformat()} – "
        f"{comparison.current_window.end.isoformat()}: {current.avg_weight:.2f} kg x {current.avg_reps:.2f} "
        f"({current.count} sets)"
    )
    if comparison.previous_window is None:
        typer.echo("No previous period for an all-time window.")
        return
    previous = comparison.previous
    typer.echo(
        f"previous {comparison.previous_window.start.isoformat()} – {comparison.previous_window.end.isoformat()}: "
        f"{previous.avg_weight:.2f} kg x {previous.avg_reps:.2f} ({previous.count} sets)"
    )
    if comparison.status != STATUS_OK:
        typer.secho("Insufficient data for a period comparison.", fg=typer.colors.YELLOW)
        return
    typer.echo(
        f"Change: weight {format_percent(comparison.delta.weight)}, reps {format_percent(comparison.delta.reps)}"
    )


@app.command()
def week(
    exercise: list[str] = typer.Option([], "--exercise", "-x", help="Limit to these exercises (repeatable)."),
    today: Optional[str] = typer.Option(None, "--today", help="Ignore sets after this date (YYYY-MM-DD)."),
    by_day: bool = typer.Option(False, "--by-day", help="Show set counts per split day and week instead."),
    volume: bool = typer.Option(False, "--volume", help="Show sets, reps and volume per week and exercise instead."),
) -> None:
    """Week-over-week change of the last set in the two most recent weeks."""
    reference = _resolve_today(today)
    wanted = [name for name in exercise if name.strip()]
    scoped = [
        record
        for record in _read_sets()
        if record.date <= reference and (not wanted or record.exercise in wanted)
    ]
    if by_day:
        for day_name, weeks in bucket_by_day(scoped).items():
            counts = ", ".join(f"{key}: {len(items)}" for key, items in weeks.items())
            typer.echo(f"{day_name}: {counts}")
        return
    if volume:
        weekly = weekly_volume(scoped)
        if weekly.empty:
            typer.echo("No sets logged yet.")
            raise typer.Exit(code=0)
        typer.echo(render_volume_table(weekly))
        return

    grouped = group_by_exercise(scoped)
    names = wanted or list(grouped)
    if not names:
        typer.echo("No sets logged yet.")
        raise typer.Exit(code=0)
    for name in names:
        comparison = week_over_week(grouped.get(name, ()), reference)
        if not comparison.has_data:
            typer.echo(f"{name}: insufficient data (needs two logged weeks).")
            continue
        typer.echo(
            f"{name}: {comparison.previous_week} {format_point(comparison.previous)} → "
            f"{comparison.current_week} {format_point(comparison.current)} | "
            f"weight {format_percent(comparison.delta.weight)}, reps {format_percent(comparison.delta.reps)}"
        )


@app.command()
def suggest(
    exercise: str = typer.Option(..., "--exercise", "-x", help="Exercise to plan."),
    today: Optional[str] = typer.Option(None, "--today", help="Ignore sets after this date (YYYY-MM-DD)."),
) -> None:
    """Suggest the load for the next session from the last two sets."""
    reference = _resolve_today(today)
    suggestion = suggest_next(exercise_history(_read_records(), exercise), reference)
    if suggestion.status != STATUS_OK:
        typer.secho(f"{exercise}: {suggestion.message}", fg=typer.colors.YELLOW)
        return
    typer.echo(f"{exercise}: {suggestion.message}")


@app.command()
def plot(
    exercise: Optional[str] = typer.Option(
        None,
        "--exercise",
        "-x",
        help="Exercise to chart (defaults to total daily strength).",
    ),
    output_dir: Path = typer.Option(Path("data/plots"), "--output-dir", "-o", help="Where to save PNG files."),
    today: Optional[str] = typer.Option(None, "--today", help="Ignore sets after this date (YYYY-MM-DD)."),
) -> None:
    """Create progress charts."""
    reference = _resolve_today(today)
    records = _read_records()
    try:
        paths = generate_plots(records, output_dir=output_dir, today=reference, exercise=exercise)
    except RuntimeError as exc:
        _fail(str(exc))
    except ValueError as exc:
        _fail(str(exc), code=0)

    for path in paths:
        typer.echo(f"Saved plot to {path}")


@app.command()
def export(
    to: Path = typer.Option(Path("export"), "--to", "-t", help="Destination directory."),
    today: Optional[str] = typer.Option(None, "--today", help="Reference date for the summary JSON."),
) -> None:
    """Export logged sets as CSV plus the progress summary as JSON."""
    reference = _resolve_today(today)
    records = _read_records()
    df = build_export_dataframe(records)
    if df.empty:
        typer.echo("No sets available to export.")
        raise typer.Exit(code=0)

    to.mkdir(parents=True, exist_ok=True)
    stem = f"gympro_{reference.isoformat()}"
    csv_path = to / f"{stem}.csv"
    json_path = to / f"{stem}_summary.json"
    df.to_csv(csv_path, index=False)
    report = build_progress_report(records, today=reference)
    json_path.write_text(json.dumps(report.to_dict(), indent=2) + "\n", encoding="utf-8")

    typer.echo(f"Exported {len(df)} sets:")
    typer.echo(f" • CSV: {csv_path}")
    typer.echo(f" • Summary: {json_path}")


@app.command()
def report(
    output_dir: Path = typer.Option(Path("reports"), "--output-dir", "-o", help="Destination directory for the PDF."),
    today: Optional[str] = typer.Option(None, "--today", help="Reference date (YYYY-MM-DD, defaults to today)."),
    include_split: bool = typer.Option(False, "--include-split", help="Add split exercises without history."),
) -> None:
    """Generate a PDF progress report."""
    reference = _resolve_today(today)
    try:
        pdf_path = generate_progress_report(
            _read_records(),
            today=reference,
            output_dir=output_dir,
            exercises=all_exercises() if include_split else None,
        )
    except ValueError as exc:
        _fail(str(exc), code=0)
    typer.echo(f"Progress report saved to {pdf_path}")


@app.command("import")
def import_records_cli(
    source: Path = typer.Option(..., "--source", "-s", help="CSV or JSON file with set records."),
    skip_invalid: bool = typer.Option(False, "--skip-invalid", help="Import valid rows and drop the rest."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Validate the file without writing to storage."),
) -> None:
    """
    Import set records from CSV or JSON files.

    Rows without an id get a fresh one; rows whose id is already stored are skipped.
    """
    source_path = source.expanduser()
    if not source_path.exists():
        _fail(f"Import source not found: {source_path}")
    try:
        rows = _load_import_rows(source_path)
    except ValueError as exc:
        _fail(str(exc))

    prepared = [
        {**row, "id": str(row.get("id") or "").strip() or new_set_id()} if isinstance(row, dict) else row
        for row in rows
    ]
    result = parse_records(prepared)
    if result.rejected:
        for index, reason in result.rejected:
            typer.secho(f"Row {index + 1}: {reason}", fg=typer.colors.YELLOW, err=True)
        if not skip_invalid:
            _fail("Import aborted; fix the rows above or pass --skip-invalid.")

    existing = _read_records()
    known_ids = {str(record.get("id")) for record in existing if isinstance(record, dict)}
    fresh = [record for record in result.records if record.id not in known_ids]
    if dry_run:
        typer.echo(f"Validated {len(fresh)} new sets from {source_path} (dry-run).")
        raise typer.Exit(code=0)

    stored = append_records(fresh)
    typer.echo(f"Imported {len(fresh)} sets from {source_path} (total now {len(stored)}).")


@app.command()
def seed(
    source: Path = typer.Option(
        Path("data/sample_logs.json"),
        "--source",
        "-s",
        help="Seed data source file (default: data/sample_logs.json).",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing sets without prompting."),
) -> None:
    """Populate the log with sample sets."""
    try:
        payload = load_seed_payload(source.expanduser())
    except (FileNotFoundError, ValueError) as exc:
        _fail(str(exc))

    if _read_records() and not force:
        _fail(f"{logs_file()} already has sets. Re-run with --force to overwrite.", code=2)

    save_records(payload)
    typer.echo(f"Seeded {len(payload)} sets to {logs_file()}")


@app.command()
def delete(
    record_id: str = typer.Option(..., "--id", help="Id of the set to delete (see `history`)."),
) -> None:
    """Delete one logged set."""
    try:
        removed = delete_record(record_id.strip())
    except ValueError as exc:
        _fail(f"Could not read set log: {exc}")
    if not removed:
        _fail(f"No set with id {record_id!r}.", code=2)
    typer.echo(f"Deleted set {record_id}.")


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete every logged set."""
    if not yes and not typer.confirm("Are you sure? This will delete all logs."):
        raise typer.Exit(code=1)
    try:
        count = clear_records()
    except ValueError as exc:
        _fail(f"Could not read set log: {exc}")
    typer.echo(f"Removed {count} sets.")


@app.command("split")
def split_show(
    day: Optional[str] = typer.Option(None, "--day", help="Show a single day."),
) -> None:
    """Show the weekly split."""
    days = load_split()
    if day:
        entry = find_day(day, days)
        if entry is None:
            _fail(f"Unknown split day {day!r}.")
        days = (entry,)
    for entry in days:
        exercises = ", ".join(entry.exercises) if entry.exercises else "rest day"
        typer.echo(f"{entry.day} ({entry.muscle}): {exercises}")


@app.command("config")
def config_show() -> None:
    """Show the effective configuration."""
    config = config_as_dict()
    typer.echo(f"Config source: {config.get('source')}")
    typer.echo(f"Log file: {logs_file()}")
    typer.echo(f"Rolling window: {config.get('rolling_window_days')} days")
    thresholds = config.get("suggestions", {})
    typer.echo(
        "Suggestions: "
        f"increase at >= {thresholds.get('increase_at_reps')} reps by {thresholds.get('increment_kg')} kg, "
        f"hold at <= {thresholds.get('hold_at_reps')} reps"
    )


def _resolve_today(value: Optional[str]) -> date:
    if value is None:
        return date.today()
    try:
        return parse_iso_date(value, field="today")
    except ValidationError as exc:
        raise typer.BadParameter(str(exc), param_name="today") from exc


def _read_records() -> list[Any]:
    records: list[Any] = []
    try:
        records = load_records()
    except ValueError as exc:
        _fail(f"Could not read set log: {exc}")
    return records


def _read_sets() -> tuple[WorkoutSet, ...]:
    result = None
    try:
        result = load_sets()
    except ValueError as exc:
        _fail(f"Could not read set log: {exc}")
    if result.rejected:
        typer.secho(
            f"Skipped {len(result.rejected)} malformed record(s); run with --debug for details.",
            fg=typer.colors.YELLOW,
            err=True,
        )
    return result.records


def _warn_if_off_split(exercise: str, day: Optional[str]) -> None:
    if exercise in exercises_for_day(day or ""):
        return
    scheduled = day_for_exercise(exercise)
    if scheduled is None:
        if all_exercises():
            typer.secho(
                f"Note: '{exercise}' is not part of the weekly split; it is tracked on its own.",
                fg=typer.colors.YELLOW,
            )
        return
    typer.secho(
        f"Note: '{exercise}' is scheduled on {scheduled}, logged under {day}.",
        fg=typer.colors.YELLOW,
    )


def _load_import_rows(source: Path) -> list[Any]:
    suffix = source.suffix.lower()
    if suffix == ".json":
        try:
            payload = json.loads(source.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Could not parse {source}: {exc}") from exc
        if not isinstance(payload, list):
            raise ValueError(f"{source} must contain a JSON list")
        return payload
    if suffix == ".csv":
        with source.open("r", newline="", encoding="utf-8") as handle:
            return [
                {key: value for key, value in row.items() if value not in (None, "")}
                for row in csv.DictReader(handle)
            ]
    raise ValueError(f"Unsupported import format {suffix or '(none)'}; use .csv or .json.")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
