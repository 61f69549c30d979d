"""Tests for the calendar (month grid) layout."""

from datetime import time

import pandas as pd
import pytest

from meterdash import layout, transform
from meterdash.exceptions import ConfigurationError
from meterdash.types import ColorDimension


def _row(out, day, t):
    return out[(out["date"] == pd.Timestamp(day).date()) & (out["time"] == t)].iloc[0]


def test_calendarize_coordinates(two_day_base):
    frame = two_day_base.frame
    daily = transform.daily_aggregate(frame, threshold=20)
    out = layout.calendarize(frame, daily, color_by=ColorDimension.WORK)
    assert len(out) == len(frame)
    for col in ("date", "time", "kwh", "daily_kwh", "over_threshold", "work", "color", "grid_x", "grid_y"):
        assert col in out.columns

    first = _row(out, "2018-01-01", time(0, 0))
    assert (first["month_col"], first["month_row"], first["day_col"], first["week_row"]) == (0, 0, 0, 0)
    assert first["grid_x"] == pytest.approx(0.0)
    assert first["grid_y"] == pytest.approx(-1 + layout.CELL_FILL)

    tuesday = _row(out, "2018-01-02", time(23, 30))
    assert tuesday["day_col"] == 1
    assert tuesday["grid_x"] == pytest.approx(1 + 1410 / 1440 * layout.CELL_FILL)
    assert out["daily_kwh"].eq(48.0).all()
    assert out["over_threshold"].all()


def test_calendarize_wraps_months(year_base):
    out = layout.calendarize(year_base.frame, ncol=4)
    dec31 = _row(out, "2018-12-31", time(0, 0))
    # Dec is the 12th block: column 3, row 2; 1 Dec 2018 is a Saturday
    assert (dec31["month_col"], dec31["month_row"]) == (3, 2)
    assert (dec31["day_col"], dec31["week_row"]) == (0, 5)
    assert dec31["grid_x"] == pytest.approx(3 * layout.MONTH_WIDTH)
    assert out["week_row"].max() <= layout.WEEKS_PER_MONTH - 1
    assert out["day_col"].between(0, 6).all()


def test_calendarize_continuous_colour(year_base):
    out = layout.calendarize(year_base.frame, color_by="max_temp")
    assert out["color"].dtype == float
    assert out["color"].between(20.0, 28.0).all()


def test_calendarize_unknown_colour(two_day_base):
    with pytest.raises(ConfigurationError):
        layout.calendarize(two_day_base.frame, color_by="humidity")


def test_month_labels(year_base):
    labels = layout.month_labels(layout.calendarize(year_base.frame, ncol=4))
    assert len(labels) == 12
    assert labels["label"].iloc[0] == "Jan 2018"
    may = labels[labels["label"] == "May 2018"].iloc[0]
    assert (may["x"], may["y"]) == (0.0, -layout.MONTH_HEIGHT)
