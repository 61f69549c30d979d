"""Tests for the dependency-tracked view cache."""

import pytest

from meterdash import Session, session
from meterdash.config import DashboardConfig
from meterdash.exceptions import SelectionError
from meterdash.types import ColorDimension, DateRange, Dimension, Predictor, Selection


@pytest.fixture
def sess(two_week_base):
    sel = Selection(
        baseline=DateRange("2018-01-01", "2018-01-07"),
        comparison=DateRange("2018-01-08", "2018-01-14"),
        threshold=12.0,
        household_size=3,
    )
    return Session(two_week_base, sel)


def test_default_selection_from_config(two_week_base):
    s = Session(two_week_base, config=DashboardConfig(default_period_days=7, default_threshold=5.0))
    sel = s.snapshot()
    assert sel.baseline == DateRange("2018-01-01", "2018-01-07")
    assert sel.comparison == DateRange("2018-01-08", "2018-01-14")
    assert sel.threshold == 5.0
    assert sel.group_by == Dimension.WEEKDAY


def test_views_are_memoised(sess):
    first = sess.get("daily")
    assert sess.get("daily") is first
    assert sess.compute_counts["daily"] == 1
    assert sess.compute_counts["subset"] == 1


def test_colour_change_only_recomputes_calendar(sess):
    sess.get("calendar")
    sess.get("group_summary")
    stale = sess.update(color_by=ColorDimension.MAX_TEMP)
    assert stale == ["calendar"]
    assert not sess.is_stale("daily")
    sess.get("calendar")
    sess.get("group_summary")
    assert sess.compute_counts["calendar"] == 2
    assert sess.compute_counts["daily"] == 1
    assert sess.compute_counts["group_summary"] == 1


def test_threshold_change_recomputes_daily_not_subset(sess):
    daily = sess.get("daily")
    assert not daily["over_threshold"].iloc[0]
    sess.update(threshold=5.0)
    assert sess.is_stale("daily") and not sess.is_stale("subset")
    assert sess.get("daily")["over_threshold"].all()
    assert sess.compute_counts["subset"] == 1
    assert sess.compute_counts["daily"] == 2


def test_predictor_change_refits_without_rebuilding_comparison(sess):
    fit = sess.get("model")
    assert fit.estimates.difference == pytest.approx(5.0)
    sess.update(predictors=frozenset({Predictor.WEEKDAY}))
    sess.get("model")
    assert sess.compute_counts["model"] == 2
    assert sess.compute_counts["comparison"] == 1


def test_same_value_update_is_not_stale(sess):
    sess.get("group_summary")
    assert sess.update(group_by="weekday") == []
    sess.get("group_summary")
    assert sess.compute_counts["group_summary"] == 1


def test_view_reports_recoverable_errors(sess):
    sess.update(baseline=DateRange("2019-01-01", "2019-01-07"))
    empty = sess.view("daily")
    assert empty.status == "empty" and empty.data is None
    assert "no data for this selection" in empty.message

    model_err = sess.view("model")
    assert model_err.status == "model_error"

    sess.update(baseline=DateRange("2018-01-01", "2018-01-07"), predictors={"month"})
    assert sess.view("model").status == "model_error"
    assert sess.view("daily").ok


def test_invalid_updates_keep_selection(sess):
    before = sess.snapshot()
    with pytest.raises(SelectionError):
        sess.update(household_size=9)
    with pytest.raises(SelectionError):
        sess.update(colour="red")
    assert sess.snapshot() is before


def test_refresh_all_views(sess):
    results = sess.refresh()
    assert set(results) == set(session.VIEWS)
    assert all(r.ok for r in results.values())


def test_dependencies_are_transitive():
    assert session.dependencies("calendar") == {"color_by", "threshold", "baseline"}
    assert session.dependencies("model") == {"predictors", "baseline", "comparison", "household_size"}


def test_update_accepts_date_pairs(sess):
    sess.update(baseline=("2018-01-01", "2018-01-03"))
    assert sess.snapshot().baseline == DateRange("2018-01-01", "2018-01-03")
    assert len(sess.view("daily").data) == 3
    with pytest.raises(SelectionError):
        sess.update(baseline="2018-01-01")


def test_update_coerces_threshold(sess):
    sess.update(threshold="5")
    assert sess.snapshot().threshold == 5.0
    with pytest.raises(SelectionError):
        sess.update(threshold="abc")
    with pytest.raises(SelectionError):
        sess.update(threshold=None)
