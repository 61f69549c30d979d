"""
Calendar layout: project half-hourly readings onto a month/day grid.

Months are placed left to right, `ncol` per row, wrapping downwards. Inside
a month block, days sit in a 7-column (Mon..Sun) by 6-row (week of month)
grid and each day cell holds one intraday trace: time of day on the local
x-axis, kWh on the local y-axis. Only coordinates are produced here.
"""

from __future__ import annotations
from typing import Optional

import pandas as pd

from . import canon, transform, utils
from .exceptions import ConfigurationError, SelectionError
from .types import ColorDimension

DAYS_PER_WEEK = 7
WEEKS_PER_MONTH = 6
MONTH_GAP = 1.0
CELL_FILL = 0.9  # share of a day cell used by its trace
MONTH_WIDTH = DAYS_PER_WEEK + MONTH_GAP
MONTH_HEIGHT = WEEKS_PER_MONTH + MONTH_GAP


def _color_column(df: pd.DataFrame, color_by: ColorDimension | str) -> tuple[str, pd.Series]:
    try:
        dim = ColorDimension(color_by)
    except ValueError as e:
        raise ConfigurationError(f"Unknown colour dimension: {color_by!r}") from e
    if dim.column not in df.columns:
        raise ConfigurationError(f"Column '{dim.column}' not present for colour '{dim.value}'.")
    values = df[dim.column]
    if dim.is_continuous:
        values = pd.to_numeric(values, errors="coerce").astype(float)
    return dim.column, values


def calendarize(
    df: pd.DataFrame,
    daily: Optional[pd.DataFrame] = None,
    *,
    color_by: ColorDimension | str = ColorDimension.WORK,
    ncol: int = 4,
    threshold: float = 0.0,
) -> pd.DataFrame:
    """
    Flat calendar table: one row per interval with 'grid_x' / 'grid_y'
    plus pass-through 'date', 'time', 'kwh', 'daily_kwh', 'over_threshold',
    the colour dimension's column and 'color'.

    `daily` is the daily aggregate of the same rows; computed when omitted.
    """
    if df.empty:
        raise SelectionError("No data for this selection.")
    if ncol < 1:
        raise ConfigurationError("ncol must be >= 1")
    utils.require_columns(df, ["date", "time", "kwh"])
    if daily is None:
        daily = transform.daily_aggregate(df, threshold)

    color_col, color = _color_column(df, color_by)
    out = df[["date", "time", "kwh"]].copy()
    if color_col not in out.columns:
        out[color_col] = df[color_col]
    out["color"] = color
    out = out.merge(
        daily[["date", "kwh", "over_threshold"]].rename(columns={"kwh": "daily_kwh"}),
        on="date",
        how="left",
        validate="many_to_one",
    )

    ts = pd.to_datetime(out["date"])
    month_key = ts.dt.year * 12 + ts.dt.month - 1
    ordinal = month_key.map({k: i for i, k in enumerate(sorted(month_key.unique()))})
    first_wd = (ts - pd.to_timedelta(ts.dt.day - 1, unit="D")).dt.dayofweek

    out["month_col"] = (ordinal % ncol).astype(int)
    out["month_row"] = (ordinal // ncol).astype(int)
    out["day_col"] = ts.dt.dayofweek.astype(int)
    out["week_row"] = ((ts.dt.day - 1 + first_wd) // DAYS_PER_WEEK).astype(int)

    x_local = utils.minutes_of_day(out["time"]) / (24 * 60) * CELL_FILL
    y_local = utils.scale_unit(out["kwh"], float(out["kwh"].max())) * CELL_FILL

    out["grid_x"] = out["month_col"] * MONTH_WIDTH + out["day_col"] + x_local
    out["grid_y"] = -(out["month_row"] * MONTH_HEIGHT + out["week_row"] + 1) + y_local
    return out.sort_values(["date", "time"], kind="stable").reset_index(drop=True)


def month_labels(layout: pd.DataFrame) -> pd.DataFrame:
    """Label and top-left corner of each month block in a calendar layout."""
    ts = pd.to_datetime(layout["date"])
    blocks = (
        pd.DataFrame(
            {
                "year": ts.dt.year,
                "month": ts.dt.month,
                "month_col": layout["month_col"],
                "month_row": layout["month_row"],
            }
        )
        .drop_duplicates()
        .sort_values(["year", "month"])
        .reset_index(drop=True)
    )
    blocks["label"] = [
        f"{canon.MONTHS[m - 1]} {y}" for y, m in zip(blocks["year"], blocks["month"])
    ]
    blocks["x"] = blocks["month_col"] * MONTH_WIDTH
    blocks["y"] = -(blocks["month_row"] * MONTH_HEIGHT)
    return blocks[["label", "month_col", "month_row", "x", "y"]]
