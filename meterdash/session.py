"""
Reactive view cache for one dashboard session.

Each derived view declares the Selection fields and upstream views it
reads. A view is recomputed on `get` only when the values it depends on
differ from those it was last computed with, so changing e.g. the colour
dimension leaves the daily aggregate untouched.
"""

from __future__ import annotations
import logging
from collections import Counter
from dataclasses import dataclass, fields
from typing import Callable, Iterable, Optional

import pandas as pd

from . import layout, model, transform
from .config import DashboardConfig, default_config
from .exceptions import ConfigurationError, ModelError, SelectionError
from .types import BaseTable, DateRange, Selection, ViewResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewSpec:
    fields: tuple[str, ...]
    upstream: tuple[str, ...]
    compute: Callable[["Session", Selection, dict], object]


VIEWS: dict[str, ViewSpec] = {
    "subset": ViewSpec(
        ("baseline",),
        (),
        lambda s, sel, up: transform.subset(s.base.frame, sel.baseline),
    ),
    "daily": ViewSpec(
        ("threshold",),
        ("subset",),
        lambda s, sel, up: transform.daily_aggregate(up["subset"], sel.threshold),
    ),
    "group_summary": ViewSpec(
        ("group_by", "daily_stat"),
        ("daily",),
        lambda s, sel, up: transform.group_daily(up["daily"], sel.group_by, stat=sel.daily_stat),
    ),
    "profile": ViewSpec(
        ("group_by", "facet_by", "geometry"),
        ("subset",),
        lambda s, sel, up: transform.profile(
            up["subset"], sel.group_by, facet_by=sel.facet_by, geometry=sel.geometry
        ),
    ),
    "calendar": ViewSpec(
        ("color_by",),
        ("subset", "daily"),
        lambda s, sel, up: layout.calendarize(
            up["subset"],
            up["daily"],
            color_by=sel.color_by,
            ncol=s.config.calendar_columns,
        ),
    ),
    "comparison": ViewSpec(
        ("baseline", "comparison", "household_size"),
        (),
        lambda s, sel, up: model.comparison_frame(
            s.base.frame,
            sel.baseline,
            sel.comparison,
            s.base.benchmarks,
            sel.household_size,
        ),
    ),
    "model": ViewSpec(
        ("predictors",),
        ("comparison",),
        lambda s, sel, up: model.fit_model(up["comparison"], sel.predictors),
    ),
    "benchmark_summary": ViewSpec(
        (),
        ("comparison",),
        lambda s, sel, up: model.benchmark_summary(up["comparison"]),
    ),
}


def dependencies(name: str) -> set[str]:
    """All Selection fields a view reads, directly or through upstream views."""
    entry = VIEWS[name]
    out = set(entry.fields)
    for u in entry.upstream:
        out |= dependencies(u)
    return out


class Session:
    """
    One user's live selection over an immutable base table.

    The base table is injected at construction and never modified; the
    Selection is replaced (not mutated) by `update`.
    """

    def __init__(
        self,
        base: BaseTable,
        selection: Optional[Selection] = None,
        *,
        config: Optional[DashboardConfig] = None,
    ):
        self.base = base
        self.config = config or default_config()
        self._selection = selection or Selection.default(
            base.start,
            base.end,
            period_days=self.config.default_period_days,
            threshold=self.config.default_threshold,
            household_size=self.config.default_household_size,
            group_by=self.config.default_group_by,
            color_by=self.config.default_color_by,
        )
        self._cache: dict[str, tuple[tuple, object]] = {}
        self.compute_counts: Counter[str] = Counter()

    @property
    def selection(self) -> Selection:
        return self._selection

    def snapshot(self) -> Selection:
        return self._selection

    def update(self, **changes) -> list[str]:
        """Install a new Selection; returns the views made stale by the change."""
        unknown = set(changes) - {f.name for f in fields(Selection)}
        if unknown:
            raise SelectionError(f"Unknown selection fields: {', '.join(sorted(unknown))}")
        old = self._selection
        new = old.evolve(**changes)
        changed = {f.name for f in fields(Selection) if getattr(old, f.name) != getattr(new, f.name)}
        self._selection = new
        stale = [n for n in VIEWS if dependencies(n) & changed]
        logger.debug("Selection changed %s; stale views: %s", sorted(changed), stale)
        return stale

    # Filter engine operations
    def subset(self, date_range: DateRange) -> pd.DataFrame:
        return transform.subset(self.base.frame, date_range)

    def daily_aggregate(self, rows: pd.DataFrame) -> pd.DataFrame:
        return transform.daily_aggregate(rows, self._selection.threshold)

    def _key(self, name: str, sel: Selection) -> tuple:
        entry = VIEWS[name]
        return (
            tuple(getattr(sel, f) for f in entry.fields),
            tuple(self._key(u, sel) for u in entry.upstream),
        )

    def is_stale(self, name: str) -> bool:
        cached = self._cache.get(name)
        return cached is None or cached[0] != self._key(name, self._selection)

    def get(self, name: str):
        """Current value of a view, recomputed only if its inputs changed."""
        if name not in VIEWS:
            raise ConfigurationError(f"Unknown view: {name!r}")
        return self._get(name, self._selection)

    def _get(self, name: str, sel: Selection):
        entry = VIEWS[name]
        key = self._key(name, sel)
        cached = self._cache.get(name)
        if cached is not None and cached[0] == key:
            return cached[1]
        inputs = {u: self._get(u, sel) for u in entry.upstream}
        logger.debug("Recomputing view %s", name)
        value = entry.compute(self, sel, inputs)
        self._cache[name] = (key, value)
        self.compute_counts[name] += 1
        return value

    def view(self, name: str) -> ViewResult:
        """Like `get`, but recoverable failures become a status for display."""
        try:
            return ViewResult(name, "ok", self.get(name))
        except SelectionError as e:
            return ViewResult(name, "empty", message=f"no data for this selection: {e}")
        except ModelError as e:
            return ViewResult(name, "model_error", message=str(e))
        except ConfigurationError as e:
            return ViewResult(name, "config_error", message=str(e))

    def refresh(self, names: Optional[Iterable[str]] = None) -> dict[str, ViewResult]:
        """Bring the given views (default: all) up to date."""
        return {n: self.view(n) for n in (names or VIEWS)}
