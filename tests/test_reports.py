from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from gympro.reports import generate_progress_report

SAMPLE = Path(__file__).resolve().parent.parent / "data" / "sample_logs.json"


def test_generate_progress_report_writes_pdf(tmp_path):
    records = json.loads(SAMPLE.read_text(encoding="utf-8"))
    pdf_path = generate_progress_report(
        records,
        today=date(2025, 9, 17),
        output_dir=tmp_path,
        exercises=["Pull-Ups"],
    )
    assert pdf_path == tmp_path / "progress_2025-09-17.pdf"
    assert pdf_path.read_bytes().startswith(b"%PDF")


def test_generate_progress_report_requires_valid_sets(tmp_path):
    with pytest.raises(ValueError):
        generate_progress_report([{"id": "x", "date": "nope"}], today=date(2025, 9, 17), output_dir=tmp_path)
