from __future__ import annotations
import pandas as pd
from typing import Optional

from . import canon, utils, validate
from .exceptions import ConfigurationError, SelectionError
from .types import DailyStat, DateRange, Dimension, Geometry

# Per-date attributes carried through daily aggregation
DAILY_ATTRS: list[str] = [*canon.CALENDAR_COLS, *canon.WEATHER_COLS]


def subset(df: pd.DataFrame, date_range: DateRange) -> pd.DataFrame:
    """All interval rows with date in [start, end] (inclusive)."""
    mask = (df["date"] >= date_range.start) & (df["date"] <= date_range.end)
    out = df.loc[mask]
    if out.empty:
        raise SelectionError(
            f"No data for this selection ({date_range.start} to {date_range.end})."
        )
    return out.copy()


def resolve_dimension(df: pd.DataFrame, dimension: Dimension | str) -> str:
    """Column backing a dimension; unknown or absent dimensions are configuration errors."""
    try:
        dim = Dimension(dimension)
    except ValueError as e:
        raise ConfigurationError(f"Unknown dimension: {dimension!r}") from e
    if dim.column not in df.columns:
        raise ConfigurationError(f"Column '{dim.column}' not present for dimension '{dim.value}'.")
    return dim.column


def daily_aggregate(df: pd.DataFrame, threshold: float = 0.0) -> pd.DataFrame:
    """
    One row per date:
      - 'kwh' daily sum with missing readings counted as 0
      - 'over_threshold' kwh > threshold
      - calendar and weather attributes passed through (must be unique per date)
    """
    attrs = [c for c in DAILY_ATTRS if c in df.columns]
    validate.assert_unique_per_date(df, attrs)

    g = df.groupby("date", sort=True)
    out = g["kwh"].sum(min_count=0).to_frame("kwh")
    if attrs:
        out = out.join(g[attrs].first())
        # first() can drop the categorical dtype; restore declared levels
        for c in attrs:
            if isinstance(df[c].dtype, pd.CategoricalDtype):
                out[c] = out[c].astype(df[c].dtype)
    out["over_threshold"] = out["kwh"] > float(threshold)
    return out.reset_index()[["date", "kwh", "over_threshold", *attrs]]


def group_summary(
    df: pd.DataFrame,
    by: Dimension | str,
    *,
    threshold: float = 0.0,
    stat: DailyStat = "sum",
) -> pd.DataFrame:
    """
    Daily usage grouped by a calendar dimension.

    Sums each date first, then reports the total (stat='sum') or mean
    (stat='mean') of daily totals per group, plus the number of days.
    Rows follow the dimension's declared order.
    """
    resolve_dimension(df, by)
    return group_daily(daily_aggregate(df, threshold), by, stat=stat)


def group_daily(
    daily: pd.DataFrame, by: Dimension | str, *, stat: DailyStat = "sum"
) -> pd.DataFrame:
    """group_summary for an already aggregated daily frame."""
    col = resolve_dimension(daily, by)
    if stat not in ("sum", "mean"):
        raise ConfigurationError("stat must be one of: sum, mean")
    out = (
        daily.groupby(col, observed=True, sort=True)["kwh"]
        .agg([stat, "size"])
        .rename(columns={stat: "kwh", "size": "days"})
        .reset_index()
    )
    return out


def profile(
    df: pd.DataFrame,
    by: Dimension | str,
    *,
    facet_by: Optional[Dimension | str] = None,
    geometry: Geometry | str = Geometry.LINE,
) -> pd.DataFrame:
    """
    Half-hourly usage per time of day and group (optionally faceted).

    LINE: mean kWh per [facet, group, time].
    BOXPLOT: min / q1 / median / q3 / max per [facet, group, time].
    """
    keys = [resolve_dimension(df, by)]
    if facet_by is not None:
        fcol = resolve_dimension(df, facet_by)
        if fcol not in keys:
            keys.insert(0, fcol)
    keys.append("time")
    utils.require_columns(df, ["time", "kwh"])

    g = df.groupby(keys, observed=True, sort=True)["kwh"]
    if Geometry(geometry) == Geometry.BOXPLOT:
        out = g.agg(
            min="min",
            q1=lambda s: s.quantile(0.25),
            median="median",
            q3=lambda s: s.quantile(0.75),
            max="max",
        )
    else:
        out = g.mean().to_frame("kwh")
    return out.reset_index()
