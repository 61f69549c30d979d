"""Calendar attributes derived from the reading date."""

from __future__ import annotations
from datetime import date, datetime
from typing import Iterable

import numpy as np
import pandas as pd

from . import canon, utils


def season_of(month: int) -> str:
    """Southern-hemisphere season for a month number (1..12)."""
    return canon.SEASON_BY_MONTH[int(month)]


def _as_dates(values: pd.Series) -> pd.Series:
    if pd.api.types.is_datetime64_any_dtype(values):
        return values.dt.date
    if values.map(lambda v: isinstance(v, date) and not isinstance(v, datetime)).all():
        return values
    return utils.parse_dates(values.astype(str))


def classify_work(dates: pd.Series, holidays: Iterable[date] = ()) -> pd.Categorical:
    """'holiday' for weekends and listed holidays, otherwise 'work day'."""
    hols = frozenset(holidays)
    ts = pd.to_datetime(pd.Series(dates))
    weekend = ts.dt.dayofweek.to_numpy() >= 5
    listed = pd.Series(dates).isin(hols).to_numpy()
    labels = np.where(weekend | listed, "holiday", "work day")
    return utils.ordered_categorical(labels, canon.WORK, ordered=False)


def enrich(df: pd.DataFrame, holidays: Iterable[date] = ()) -> pd.DataFrame:
    """
    Attach calendar attributes to an interval table.

    Adds (or recomputes):
      - 'time' from 'slot' when not already present
      - 'weekday' ordered Mon..Sun
      - 'month' ordered Jan..Dec
      - 'year' ordered over the years present
      - 'season' ordered summer < autumn < winter < spring
      - 'work' 'work day' / 'holiday'

    Returns a new frame; the input is left untouched.
    """
    utils.require_columns(df, ["date"])
    out = df.copy()
    out["date"] = _as_dates(out["date"])
    if "time" not in out.columns and "slot" in out.columns:
        out["time"] = utils.slot_times(out["slot"])

    ts = pd.to_datetime(out["date"])
    months = ts.dt.month
    years = ts.dt.year

    out["weekday"] = utils.ordered_categorical(
        [canon.WEEKDAYS[d] for d in ts.dt.dayofweek], canon.WEEKDAYS
    )
    out["month"] = utils.ordered_categorical(
        [canon.MONTHS[m - 1] for m in months], canon.MONTHS
    )
    out["year"] = utils.ordered_categorical(years, sorted(years.unique()))
    out["season"] = utils.ordered_categorical(months.map(season_of), canon.SEASONS)
    out["work"] = classify_work(out["date"], holidays)
    return out
