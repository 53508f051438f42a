from __future__ import annotations

import os

PREFIX = "GYMPRO_"


def get_env(name: str, default: str | None = None) -> str | None:
    """
    Resolve configuration environment variables.

    Every setting lives under the ``GYMPRO_`` prefix, e.g. ``GYMPRO_DATA_DIR``.
    """
    value = os.getenv(f"{PREFIX}{name}")
    if value is not None:
        return value
    return default
