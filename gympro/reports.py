from __future__ import annotations

import tempfile
from datetime import date
from importlib import metadata
from pathlib import Path
from typing import Any, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .analysis import group_by_exercise
from .config import as_dict as config_as_dict
from .metrics import total_strength_series
from .services import (
    ProgressReport,
    build_progress_report,
    create_strength_plot,
    format_percent,
    format_point,
)
from .weeks import WeekComparison, week_over_week

HEADER_COLOR = colors.HexColor("#1F3C88")


def generate_progress_report(
    records: Sequence[Any],
    *,
    today: date,
    output_dir: Path = Path("reports"),
    exercises: Sequence[str] | None = None,
) -> Path:
    """
    Build a PDF with the progress table, week-over-week changes and the total strength chart.
    """
    report = build_progress_report(records, today=today, exercises=exercises)
    if not report.total_sets:
        raise ValueError("No valid sets available to report on.")

    grouped = group_by_exercise(records)
    weekly = {name: week_over_week(history, today) for name, history in grouped.items()}
    strength = total_strength_series(records, today)

    output_dir.mkdir(parents=True, exist_ok=True)
    destination = output_dir / f"progress_{today.isoformat()}.pdf"

    import matplotlib.pyplot as plt

    with tempfile.TemporaryDirectory() as tmp_dir:
        chart = None
        if not strength.empty:
            chart = create_strength_plot(strength, Path(tmp_dir) / "total_strength.png", plt)
        _build_pdf(destination, report, weekly, chart)
    return destination


def _build_pdf(
    destination: Path,
    report: ProgressReport,
    weekly: dict[str, WeekComparison],
    strength_chart: Path | None,
) -> None:
    story = []
    styles = getSampleStyleSheet()
    config_snapshot = config_as_dict()

    story.append(Paragraph(f"Progress Report: {report.today.isoformat()}", styles["Title"]))
    if report.date_range:
        start, end = report.date_range
        story.append(
            Paragraph(
                f"{report.total_sets} sets logged between {start.isoformat()} and {end.isoformat()}.",
                styles["BodyText"],
            )
        )
    story.append(
        Paragraph(
            f"App v{_app_version()} | Config source: {config_snapshot.get('source')} | "
            f"Rolling window: {config_snapshot.get('rolling_window_days')} days",
            styles["BodyText"],
        )
    )
    story.append(Spacer(1, 0.2 * inch))

    table_data = [
        ["Exercise", "First", "Latest", "14d avg", "14d vs first", "Month avg", "Month vs first"],
    ]
    for summary in report.summaries:
        table_data.append(
            [
                summary.exercise,
                format_point(summary.first),
                format_point(summary.latest),
                f"{summary.avg14.avg_weight:.2f}kg x {summary.avg14.avg_reps:.2f} ({summary.avg14.count})",
                f"{format_percent(summary.pct14.weight)} / {format_percent(summary.pct14.reps)}",
                f"{summary.avg_month.avg_weight:.2f}kg x {summary.avg_month.avg_reps:.2f} ({summary.avg_month.count})",
                f"{format_percent(summary.pct_month.weight)} / {format_percent(summary.pct_month.reps)}",
            ]
        )
    story.append(Paragraph("Progress vs First Session", styles["Heading2"]))
    story.append(_styled_table(table_data))
    story.append(Spacer(1, 0.3 * inch))

    if weekly:
        week_rows = [["Exercise", "Previous week", "Current week", "Weight", "Reps"]]
        for name, comparison in weekly.items():
            if comparison.has_data:
                week_rows.append(
                    [
                        name,
                        f"{comparison.previous_week}: {format_point(comparison.previous)}",
                        f"{comparison.current_week}: {format_point(comparison.current)}",
                        format_percent(comparison.delta.weight),
                        format_percent(comparison.delta.reps),
                    ]
                )
            else:
                week_rows.append([name, "insufficient data", comparison.current_week or "n/a", "n/a", "n/a"])
        story.append(Paragraph("Week over Week", styles["Heading2"]))
        story.append(_styled_table(week_rows))
        story.append(Spacer(1, 0.3 * inch))

    if report.rejected:
        story.append(
            Paragraph(
                f"<b>Skipped records:</b> {len(report.rejected)} stored record(s) could not be read.",
                styles["BodyText"],
            )
        )
        story.append(Spacer(1, 0.2 * inch))

    if strength_chart is not None:
        story.append(Paragraph("Total Strength", styles["Heading2"]))
        story.append(Image(str(strength_chart), width=7.5 * inch, height=3.8 * inch))

    doc = SimpleDocTemplate(
        str(destination),
        pagesize=landscape(letter),
        title=f"Progress Report {report.today.isoformat()}",
    )
    doc.build(story)


def _styled_table(data: list[list[str]]) -> Table:
    table = Table(data, hAlign="LEFT", repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
                ("BACKGROUND", (0, 1), (-1, -1), colors.whitesmoke),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
            ]
        )
    )
    return table


def _app_version() -> str:
    try:
        return metadata.version("gympro-tracker")
    except metadata.PackageNotFoundError:  # pragma: no cover - local dev fallback
        return "0.0.0"
