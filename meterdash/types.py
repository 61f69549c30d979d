from __future__ import annotations
from typing import TypedDict, Literal, Optional, FrozenSet
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from enum import Enum

import pandas as pd
from pydantic import BaseModel, Field

from . import canon
from .exceptions import SelectionError


# Base DataFrame
class BaseFrame(pd.DataFrame):
    """
    Enriched, weather-joined interval dataframe.

    Expected:
      - RangeIndex, one row per (date, slot)
      - Columns: ['date', 'slot', 'time', 'kwh'] + calendar columns
        ['weekday', 'month', 'year', 'season', 'work'] + weather columns
    """

    @property
    def _constructor(self):
        return BaseFrame


## Selectable dimensions
class Dimension(str, Enum):
    """Categorical grouping / facet dimensions."""

    WEEKDAY = "weekday"
    MONTH = "month"
    YEAR = "year"
    SEASON = "season"
    WORK = "work"

    @property
    def column(self) -> str:
        return _DIMENSION_COLUMNS[self]

    @property
    def levels(self) -> Optional[list[str]]:
        # None: levels come from the data (calendar years)
        return _DIMENSION_LEVELS[self]


_DIMENSION_COLUMNS = {
    Dimension.WEEKDAY: "weekday",
    Dimension.MONTH: "month",
    Dimension.YEAR: "year",
    Dimension.SEASON: "season",
    Dimension.WORK: "work",
}

_DIMENSION_LEVELS: dict[Dimension, Optional[list[str]]] = {
    Dimension.WEEKDAY: canon.WEEKDAYS,
    Dimension.MONTH: canon.MONTHS,
    Dimension.YEAR: None,
    Dimension.SEASON: canon.SEASONS,
    Dimension.WORK: canon.WORK,
}


class ColorDimension(str, Enum):
    """Colouring dimension for the calendar layout."""

    WORK = "work"
    SEASON = "season"
    RAINFALL = "rainfall"
    MIN_TEMP = "min_temp"
    MAX_TEMP = "max_temp"
    SOLAR = "solar"

    @property
    def column(self) -> str:
        return _COLOR_COLUMNS[self]

    @property
    def is_continuous(self) -> bool:
        return self not in (ColorDimension.WORK, ColorDimension.SEASON)


_COLOR_COLUMNS = {
    ColorDimension.WORK: "work",
    ColorDimension.SEASON: "season",
    ColorDimension.RAINFALL: "rainfall",
    ColorDimension.MIN_TEMP: "min_temp",
    ColorDimension.MAX_TEMP: "max_temp",
    ColorDimension.SOLAR: "solar",
}


class Predictor(str, Enum):
    """Optional model predictors (period is always included)."""

    WEEKDAY = "weekday"
    MONTH = "month"
    MONTH_X_WEEKDAY = "month:weekday"
    MAX_TEMP = "max_temp"


class Geometry(str, Enum):
    LINE = "line"
    BOXPLOT = "boxplot"


DailyStat = Literal["sum", "mean"]


## Selection state
@dataclass(frozen=True)
class DateRange:
    start: date
    end: date  # inclusive

    def __post_init__(self):
        try:
            start = pd.Timestamp(self.start).date()
            end = pd.Timestamp(self.end).date()
        except (ValueError, TypeError) as e:
            raise SelectionError(f"Invalid date range: {e}") from e
        if end < start:
            raise SelectionError(f"Date range end {end} is before start {start}.")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def _as_range(value, name: str) -> DateRange:
    """DateRange as is, or built from a (start, end) pair."""
    if isinstance(value, DateRange):
        return value
    if isinstance(value, (tuple, list)) and len(value) == 2:
        return DateRange(*value)
    raise SelectionError(f"{name} must be a DateRange or a (start, end) pair, got {value!r}")


@dataclass(frozen=True)
class Selection:
    """
    Immutable snapshot of the user's inputs.

    Replaced wholesale on every input event; engines only ever read it.
    """

    baseline: DateRange
    comparison: DateRange
    group_by: Dimension = Dimension.WEEKDAY
    color_by: ColorDimension = ColorDimension.WORK
    threshold: float = 20.0
    household_size: int = 2
    geometry: Geometry = Geometry.LINE
    facet_by: Optional[Dimension] = None
    predictors: FrozenSet[Predictor] = field(default_factory=frozenset)
    daily_stat: DailyStat = "sum"

    def __post_init__(self):
        for name in ("baseline", "comparison"):
            object.__setattr__(self, name, _as_range(getattr(self, name), name))
        # accept plain strings from widgets
        try:
            object.__setattr__(self, "group_by", Dimension(self.group_by))
            object.__setattr__(self, "color_by", ColorDimension(self.color_by))
            object.__setattr__(self, "geometry", Geometry(self.geometry))
            if self.facet_by is not None:
                object.__setattr__(self, "facet_by", Dimension(self.facet_by))
            object.__setattr__(
                self, "predictors", frozenset(Predictor(p) for p in self.predictors)
            )
            object.__setattr__(self, "threshold", float(self.threshold))
        except (ValueError, TypeError) as e:
            raise SelectionError(str(e)) from e
        if self.threshold < 0:
            raise SelectionError("Threshold must be non-negative.")
        if self.household_size not in canon.HOUSEHOLD_SIZES:
            raise SelectionError(
                f"Household size must be one of {canon.HOUSEHOLD_SIZES}, got {self.household_size}."
            )
        if self.daily_stat not in ("sum", "mean"):
            raise SelectionError("daily_stat must be one of: sum, mean")

    def evolve(self, **changes) -> "Selection":
        return replace(self, **changes)

    @classmethod
    def default(
        cls, start: date, end: date, *, period_days: int = 28, **kwargs
    ) -> "Selection":
        """Baseline = first `period_days` of the data, comparison = last."""
        start = pd.Timestamp(start).date()
        end = pd.Timestamp(end).date()
        span = timedelta(days=max(period_days, 1) - 1)
        baseline = DateRange(start, min(start + span, end))
        comparison = DateRange(max(end - span, start), end)
        return cls(baseline=baseline, comparison=comparison, **kwargs)


## Boundary records
class BenchmarkRecord(BaseModel):
    """One row of the benchmark household lookup."""

    household_size: int = Field(ge=1, le=5)
    season: Literal["summer", "autumn", "winter", "spring", "annual"]
    kwh: float = Field(ge=0)


## Base table
@dataclass(frozen=True)
class BaseTable:
    frame: BaseFrame
    holidays: FrozenSet[date] = frozenset()
    benchmarks: Optional[pd.DataFrame] = None
    meter_id: Optional[str] = None

    @property
    def start(self) -> date:
        return self.frame["date"].min()

    @property
    def end(self) -> date:
        return self.frame["date"].max()


## Model results
class GoodnessOfFit(TypedDict):
    r_squared: float
    adj_r_squared: float
    deviance: float
    sigma: float
    df_residual: float
    nobs: int


@dataclass(frozen=True)
class PeriodEstimates:
    baseline: float
    comparison: float
    difference: float


@dataclass(frozen=True)
class ModelFit:
    terms: list[str]
    coefficients: pd.DataFrame
    estimates: PeriodEstimates
    fitted: pd.DataFrame  # comparison frame + 'fitted', 'residual'
    goodness: GoodnessOfFit


ViewStatus = Literal["ok", "empty", "config_error", "model_error"]


@dataclass(frozen=True)
class ViewResult:
    name: str
    status: ViewStatus
    data: object = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"
