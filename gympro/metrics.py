from __future__ import annotations

import math
from typing import Any, Iterable

import pandas as pd

from .models import coerce_sets, parse_iso_date, round2
from .periods import week_key, week_key_order

RECORD_COLUMNS = ["id", "date", "day", "exercise", "set", "reps", "weight", "volume"]


def records_to_dataframe(records: Iterable[Any]) -> pd.DataFrame:
    """Normalise workout sets into a pandas DataFrame, dropping malformed rows."""
    rows = [
        {
            "id": record.id,
            "date": pd.Timestamp(record.date),
            "day": record.day,
            "exercise": record.exercise,
            "set": record.set_number,
            "reps": record.reps,
            "weight": record.weight,
            "volume": record.volume,
        }
        for record in coerce_sets(records)
    ]
    if not rows:
        return pd.DataFrame(columns=RECORD_COLUMNS)

    df = pd.DataFrame(rows, columns=RECORD_COLUMNS)
    df["set"] = df["set"].astype("Int64")
    df["_order"] = df["set"].fillna(0)
    df.sort_values(["date", "exercise", "_order"], kind="mergesort", inplace=True)
    df.drop(columns="_order", inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def exercise_series(records: Iterable[Any], exercise: str, today: Any = None) -> pd.DataFrame:
    """Per-date mean weight and reps for one exercise (the progress chart data)."""
    columns = ["date", "weight", "reps", "sets"]
    df = _until(records_to_dataframe(records), today)
    df = df[df["exercise"] == exercise]
    if df.empty:
        return pd.DataFrame(columns=columns)

    daily = (
        df.groupby("date", as_index=False)
        .agg(weight=("weight", "mean"), reps=("reps", "mean"), sets=("id", "count"))
        .sort_values("date")
    )
    daily["weight"] = daily["weight"].map(_round)
    daily["reps"] = daily["reps"].map(_round)
    return daily[columns].reset_index(drop=True)


def total_strength_series(records: Iterable[Any], today: Any = None) -> pd.DataFrame:
    """
    Per-date totals across every exercise.

    ``strength`` is the summed ``weight × reps`` of the day; the averages are
    plain means over all sets logged that day.
    """
    columns = ["date", "strength", "avg_weight", "avg_reps", "sets"]
    df = _until(records_to_dataframe(records), today)
    if df.empty:
        return pd.DataFrame(columns=columns)

    daily = (
        df.groupby("date", as_index=False)
        .agg(
            strength=("volume", "sum"),
            avg_weight=("weight", "mean"),
            avg_reps=("reps", "mean"),
            sets=("id", "count"),
        )
        .sort_values("date")
    )
    daily["strength"] = daily["strength"].map(_round)
    daily["avg_weight"] = daily["avg_weight"].map(_round)
    daily["avg_reps"] = daily["avg_reps"].map(_round)
    return daily[columns].reset_index(drop=True)


def weekly_volume(records: Iterable[Any]) -> pd.DataFrame:
    """Sets, reps and volume per week bucket and exercise."""
    columns = ["week_key", "exercise", "sets", "total_reps", "volume"]
    df = records_to_dataframe(records)
    if df.empty:
        return pd.DataFrame(columns=columns)

    df = df.assign(week_key=df["date"].dt.date.map(week_key))
    weekly = (
        df.groupby(["week_key", "exercise"], as_index=False)
        .agg(sets=("id", "count"), total_reps=("reps", "sum"), volume=("volume", "sum"))
    )
    weekly["volume"] = weekly["volume"].map(_round)
    order = weekly["week_key"].map(week_key_order)
    weekly["_year"] = order.map(lambda item: item[0])
    weekly["_week"] = order.map(lambda item: item[1])
    weekly.sort_values(["_year", "_week", "exercise"], inplace=True)
    return weekly[columns].reset_index(drop=True)


def _until(df: pd.DataFrame, today: Any) -> pd.DataFrame:
    if today is None or df.empty:
        return df
    cutoff = pd.Timestamp(parse_iso_date(today, field="today"))
    return df[df["date"] <= cutoff]


def _round(value: float) -> float:
    return round2(value) if math.isfinite(value) else value
