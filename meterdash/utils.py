# meterdash/utils.py
from __future__ import annotations
import math
from datetime import time as _time
from typing import Iterable

import numpy as np
import pandas as pd

from . import canon
from .exceptions import ConfigurationError, IngestError


def slot_to_time(slot: int) -> _time:
    """
    Half-hour slot index (1..48) to time of day.

    Slot 1 -> 00:00, 2 -> 00:30, 47 -> 23:00, 48 -> 23:30.
    """
    if not 1 <= int(slot) <= canon.SLOTS_PER_DAY:
        raise IngestError(f"Slot index must be within 1..{canon.SLOTS_PER_DAY}, got {slot}")
    slot = int(slot)
    hour = math.ceil(slot / 2 - 1)
    minute = canon.CADENCE_MIN if slot % 2 == 0 else 0
    return _time(hour, minute)


def slot_times(slots: pd.Series) -> pd.Series:
    """Vectorised slot_to_time over a Series of slot indices."""
    lookup = {s: slot_to_time(s) for s in range(1, canon.SLOTS_PER_DAY + 1)}
    bad = ~slots.isin(list(lookup))
    if bad.any():
        raise IngestError(f"Invalid slot indices: {sorted(slots[bad].unique())[:5]}")
    return slots.map(lookup)


def minutes_of_day(times: pd.Series) -> pd.Series:
    return times.map(lambda t: t.hour * 60 + t.minute)


def parse_dates(values: pd.Series, fmt: str = canon.DATE_FORMAT) -> pd.Series:
    """Parse date strings strictly; malformed values raise IngestError."""
    try:
        parsed = pd.to_datetime(values, format=fmt, errors="raise")
    except (ValueError, TypeError) as e:
        raise IngestError(f"Malformed date value: {e}") from e
    if parsed.isna().any():
        raise IngestError("Missing date values.")
    return parsed.dt.date


def ordered_categorical(
    values: pd.Series | Iterable, levels: list, ordered: bool = True
) -> pd.Categorical:
    return pd.Categorical(values, categories=levels, ordered=ordered)


def as_unordered(s: pd.Series) -> pd.Series:
    """Drop the ordering of a categorical Series, keeping its levels."""
    if isinstance(s.dtype, pd.CategoricalDtype) and s.cat.ordered:
        return s.cat.as_unordered()
    return s


def require_columns(
    df: pd.DataFrame, cols: Iterable[str], exc: type[Exception] = ConfigurationError
) -> None:
    missing = [c for c in cols if c not in df.columns]
    if missing:
        raise exc(f"Missing column(s): {', '.join(missing)}")


def scale_unit(values: pd.Series, top: float) -> pd.Series:
    """Scale non-negative values into [0, 1] by `top`; NaN stays NaN."""
    if not np.isfinite(top) or top <= 0:
        return values * 0.0
    return values / top
