"""End-to-end scenarios: raw export through session views."""

import io

import pytest

from meterdash import Session, ingest
from meterdash.types import DateRange, Dimension, Selection

from conftest import make_wide


@pytest.fixture
def two_day_session():
    buf = io.StringIO(make_wide(["2018-01-01", "2018-01-02"], kwh=1.0).to_csv(index=False))
    base = ingest.build_base(ingest.read_meter_csv(buf))
    sel = Selection(
        baseline=DateRange("2018-01-01", "2018-01-02"),
        comparison=DateRange("2018-01-02", "2018-01-02"),
        threshold=20,
        group_by=Dimension.MONTH,
    )
    return Session(base, sel)


def test_two_day_daily_totals(two_day_session):
    daily = two_day_session.get("daily")
    assert list(daily["kwh"]) == [48.0, 48.0]
    assert daily["over_threshold"].tolist() == [True, True]


def test_month_grouping_single_january_group(two_day_session):
    out = two_day_session.get("group_summary")
    assert list(out["month"]) == ["Jan"]
    assert out["kwh"].iloc[0] == 96.0


def test_session_filter_operations(two_day_session):
    rows = two_day_session.subset(DateRange("2018-01-02", "2018-01-02"))
    daily = two_day_session.daily_aggregate(rows)
    assert len(rows) == 48
    assert daily["kwh"].tolist() == [48.0]


def test_calendar_and_profile_views(two_day_session):
    cal = two_day_session.view("calendar")
    prof = two_day_session.view("profile")
    assert cal.ok and prof.ok
    assert len(cal.data) == 96
    assert list(prof.data["month"].unique()) == ["Jan"]
