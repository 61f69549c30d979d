from __future__ import annotations
from typing import Iterable

import pandas as pd

from . import canon, exceptions
from .exceptions import require


def assert_base(df: pd.DataFrame) -> None:
    """Check the invariants of an enriched interval table."""
    for col in (*canon.READING_COLS, *canon.CALENDAR_COLS):
        require(
            col in df.columns,
            f"Missing required column '{col}'.",
            exceptions.ConfigurationError,
        )
    require(not df.empty, "No interval readings loaded.", exceptions.IngestError)
    slots = df.groupby("date", sort=False)["slot"].agg(["nunique", "size", "min", "max"])
    bad = slots[
        (slots["nunique"] != canon.SLOTS_PER_DAY)
        | (slots["size"] != canon.SLOTS_PER_DAY)
        | (slots["min"] != 1)
        | (slots["max"] != canon.SLOTS_PER_DAY)
    ]
    require(
        bad.empty,
        f"Expected exactly {canon.SLOTS_PER_DAY} slots per date; "
        f"offending dates: {list(bad.index[:5])}",
        exceptions.IngestError,
    )
    require(
        not (df["kwh"] < 0).any(),
        "Negative kWh values detected; energy should be non-negative.",
        exceptions.IngestError,
    )


def assert_unique_per_date(df: pd.DataFrame, cols: Iterable[str], by: list[str] | None = None) -> None:
    """
    Every column in `cols` must hold a single value per date (per `by` group).

    Nulls count as a value, so a date mixing null and non-null is a conflict.
    """
    keys = by or ["date"]
    cols = [c for c in cols if c in df.columns]
    if not cols or df.empty:
        return
    counts = df.groupby(keys, observed=True, sort=False)[cols].nunique(dropna=False)
    conflicted = counts.columns[(counts > 1).any()]
    require(
        not len(conflicted),
        f"Conflicting values within a single date for: {', '.join(conflicted)}",
        exceptions.ConfigurationError,
    )
