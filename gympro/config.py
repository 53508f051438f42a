from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

from .env import get_env
from .split import DEFAULT_SPLIT, SplitDay

try:  # pragma: no cover - Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib  # type: ignore

DEFAULT_ROLLING_WINDOW_DAYS = 14


@dataclass(frozen=True)
class SuggestionThresholds:
    increase_at_reps: int = 10
    hold_at_reps: int = 6
    increment_kg: float = 2.5


@dataclass(frozen=True)
class AppConfig:
    rolling_window_days: int = DEFAULT_ROLLING_WINDOW_DAYS
    suggestions: SuggestionThresholds = SuggestionThresholds()
    split: tuple[SplitDay, ...] = DEFAULT_SPLIT


def _config_path() -> Path | None:
    """Resolve the TOML configuration file, if present."""
    env_override = get_env("CONFIG")
    if env_override:
        path = Path(env_override).expanduser()
        return path if path.exists() else None

    default_path = Path("config/gympro.toml")
    if default_path.exists():
        return default_path
    return None


def _load_toml(path: Path) -> Mapping[str, Any]:
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _coerce_window_days(raw: Any) -> int:
    try:
        days = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_ROLLING_WINDOW_DAYS
    return days if days > 0 else DEFAULT_ROLLING_WINDOW_DAYS


def _coerce_thresholds(raw: Mapping[str, Any] | None) -> SuggestionThresholds:
    base = SuggestionThresholds()
    if not raw:
        return base
    try:
        increase_at = int(raw.get("increase_at_reps", base.increase_at_reps))
        hold_at = int(raw.get("hold_at_reps", base.hold_at_reps))
        increment = float(raw.get("increment_kg", base.increment_kg))
    except (TypeError, ValueError):
        return base
    if hold_at >= increase_at or increment <= 0:
        return base
    return SuggestionThresholds(
        increase_at_reps=increase_at,
        hold_at_reps=hold_at,
        increment_kg=increment,
    )


def _coerce_split(raw: Any) -> tuple[SplitDay, ...]:
    if not isinstance(raw, list) or not raw:
        return DEFAULT_SPLIT
    days: list[SplitDay] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            return DEFAULT_SPLIT
        day = str(entry.get("day") or "").strip()
        if not day:
            return DEFAULT_SPLIT
        exercises = entry.get("exercises") or []
        if not isinstance(exercises, (list, tuple)):
            return DEFAULT_SPLIT
        names = tuple(str(name).strip() for name in exercises if str(name).strip())
        muscle = str(entry.get("muscle") or ("Rest" if not names else "")).strip()
        days.append(SplitDay(day=day, muscle=muscle, exercises=names))
    return tuple(days)


def _build_config(raw: Mapping[str, Any]) -> AppConfig:
    suggestions_section = raw.get("suggestions")
    return AppConfig(
        rolling_window_days=_coerce_window_days(
            raw.get("rolling_window_days", DEFAULT_ROLLING_WINDOW_DAYS)
        ),
        suggestions=_coerce_thresholds(
            suggestions_section if isinstance(suggestions_section, Mapping) else None
        ),
        split=_coerce_split(raw.get("split")),
    )


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load configuration once, falling back to built-in defaults."""
    path = _config_path()
    if not path:
        return AppConfig()
    data = _load_toml(path)
    return _build_config(data)


def as_dict() -> dict[str, Any]:
    config = get_config()
    return {
        "rolling_window_days": config.rolling_window_days,
        "suggestions": {
            "increase_at_reps": config.suggestions.increase_at_reps,
            "hold_at_reps": config.suggestions.hold_at_reps,
            "increment_kg": config.suggestions.increment_kg,
        },
        "split": [day.to_dict() for day in config.split],
        "source": str(_config_path() or "defaults"),
    }
