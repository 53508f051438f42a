from __future__ import annotations

import os

import pytest

os.environ.setdefault("MPLBACKEND", "Agg")

from gympro.config import get_config  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch):
    monkeypatch.delenv("GYMPRO_CONFIG", raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


@pytest.fixture
def logs_path(tmp_path, monkeypatch):
    path = tmp_path / "gympro_logs.json"
    monkeypatch.setenv("GYMPRO_LOGS_FILE", str(path))
    return path
