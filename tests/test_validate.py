"""Validation tests for base-table and per-date invariants."""

import pandas as pd
import pytest

from meterdash import validate
from meterdash.exceptions import ConfigurationError, IngestError


def test_assert_base_accepts_built_table(two_day_base):
    validate.assert_base(two_day_base.frame)


def test_assert_base_rejects_missing_slot(two_day_base):
    df = two_day_base.frame.iloc[1:]
    with pytest.raises(IngestError):
        validate.assert_base(df)


def test_assert_base_rejects_missing_calendar_column(two_day_base):
    df = two_day_base.frame.drop(columns=["season"])
    with pytest.raises(ConfigurationError):
        validate.assert_base(df)


def test_unique_per_date_conflict_raises(two_day_base):
    df = pd.DataFrame(two_day_base.frame).copy()
    df["max_temp"] = 20.0
    df.loc[df.index[0], "max_temp"] = 35.0
    with pytest.raises(ConfigurationError):
        validate.assert_unique_per_date(df, ["max_temp"])


def test_unique_per_date_allows_all_null(two_day_base):
    # no weather joined: every weather field is null, consistently
    validate.assert_unique_per_date(two_day_base.frame, ["rainfall", "solar"])


def test_assert_base_rejects_negative_and_empty(two_day_base):
    df = pd.DataFrame(two_day_base.frame).copy()
    df.loc[df.index[3], "kwh"] = -0.1
    with pytest.raises(IngestError, match="Negative"):
        validate.assert_base(df)
    with pytest.raises(IngestError, match="No interval readings"):
        validate.assert_base(df.iloc[0:0])
