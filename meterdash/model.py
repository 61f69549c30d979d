from __future__ import annotations
import logging
import warnings
from typing import Iterable, Optional

import numpy as np
import pandas as pd
import statsmodels.api as sm

from . import canon, transform, utils
from .exceptions import ModelError, SelectionError
from .types import DateRange, ModelFit, PeriodEstimates, Predictor

logger = logging.getLogger(__name__)

INTERCEPT = "intercept"
PERIOD_TERM = "period[comparison]"


def _period_rows(df: pd.DataFrame, date_range: DateRange, label: str) -> Optional[pd.DataFrame]:
    try:
        sub = transform.subset(df, date_range)
    except SelectionError:
        return None
    daily = transform.daily_aggregate(sub).drop(columns="over_threshold")
    daily.insert(0, "period", label)
    daily.insert(1, "day", np.arange(1, len(daily) + 1))
    return daily


def comparison_frame(
    df: pd.DataFrame,
    baseline: DateRange,
    comparison: DateRange,
    benchmarks: Optional[pd.DataFrame] = None,
    household_size: int = 2,
) -> pd.DataFrame:
    """
    One row per (period, date) with daily 'kwh', a 1-based 'day' index
    within each period, pass-through calendar/weather attributes and
    'benchmark_kwh' for the household size, matched on season.

    A period with no rows is kept empty; both empty is a selection error.
    """
    parts = [
        p
        for p in (
            _period_rows(df, baseline, "baseline"),
            _period_rows(df, comparison, "comparison"),
        )
        if p is not None
    ]
    if not parts:
        raise SelectionError("No data for this selection in either period.")
    out = pd.concat(parts, ignore_index=True)
    # concat can fall back to object when categories differ between periods
    for c in ("weekday", "month", "season"):
        levels = {"weekday": canon.WEEKDAYS, "month": canon.MONTHS, "season": canon.SEASONS}[c]
        if c in out.columns:
            out[c] = utils.ordered_categorical(out[c].astype(str), levels)
    if "work" in out.columns:
        out["work"] = utils.ordered_categorical(out["work"].astype(str), canon.WORK, ordered=False)
    if "year" in out.columns:
        years = sorted(pd.unique(out["year"].astype(int)))
        out["year"] = utils.ordered_categorical(out["year"].astype(int), years)
    out["period"] = utils.ordered_categorical(out["period"], canon.PERIODS)

    out["benchmark_kwh"] = np.nan
    if benchmarks is not None and not benchmarks.empty:
        bench = benchmarks[
            (benchmarks["household_size"] == int(household_size))
            & (benchmarks["season"] != "annual")
        ]
        lookup = dict(zip(bench["season"].astype(str), bench["kwh"].astype(float)))
        out["benchmark_kwh"] = out["season"].astype(str).map(lookup).astype(float)
    return out


def unorder_factors(frame: pd.DataFrame) -> pd.DataFrame:
    """
    Coerce ordered categoricals (season, year, weekday, month, period) to
    unordered ones. Ordering is for display; the model treats every
    categorical predictor with plain treatment contrasts.
    """
    out = frame.copy()
    for c in out.columns:
        out[c] = utils.as_unordered(out[c])
    return out


def expand_predictors(predictors: Iterable[Predictor | str]) -> list[Predictor]:
    """Selected predictors in a fixed order; the interaction brings in both main effects."""
    chosen = {Predictor(p) for p in predictors}
    if Predictor.MONTH_X_WEEKDAY in chosen:
        chosen |= {Predictor.MONTH, Predictor.WEEKDAY}
    return [p for p in Predictor if p in chosen]


def _dummies(s: pd.Series, name: str) -> pd.DataFrame:
    """Treatment-coded indicators; the first observed level is the reference."""
    levels = [lvl for lvl in s.cat.categories if (s == lvl).any()]
    if len(levels) < 2:
        raise ModelError(
            f"model could not be fit: predictor '{name}' has a single level in the selected data"
        )
    return pd.DataFrame(
        {f"{name}[{lvl}]": (s == lvl).astype(float) for lvl in levels[1:]},
        index=s.index,
    )


def _drop_aliased(X: pd.DataFrame, protected: list[str]) -> tuple[pd.DataFrame, list[str]]:
    """Drop columns that add no rank, in column order."""
    kept: list[str] = []
    aliased: list[str] = []
    rank = 0
    for c in X.columns:
        trial = kept + [c]
        r = np.linalg.matrix_rank(X[trial].to_numpy())
        if r > rank:
            kept, rank = trial, r
        elif c in protected:
            raise ModelError(f"model could not be fit: term '{c}' is not estimable")
        else:
            aliased.append(c)
    return X[kept], aliased


def design_matrix(
    frame: pd.DataFrame, predictors: Iterable[Predictor | str] = ()
) -> tuple[pd.DataFrame, pd.Series, list[str]]:
    """
    Build (X, y, aliased_terms) for daily kWh ~ period + predictors.

    Rows with a missing value in any used column are left out.
    """
    terms = expand_predictors(predictors)
    data = unorder_factors(frame)

    used = ["kwh", "period"]
    if Predictor.WEEKDAY in terms:
        used.append("weekday")
    if Predictor.MONTH in terms:
        used.append("month")
    if Predictor.MAX_TEMP in terms:
        used.append("max_temp")
    utils.require_columns(data, used)
    data = data.dropna(subset=used)

    counts = data["period"].value_counts()
    for p in canon.PERIODS:
        if counts.get(p, 0) == 0:
            raise ModelError(f"model could not be fit: no {p} rows")

    parts = [pd.DataFrame({INTERCEPT: 1.0}, index=data.index), _dummies(data["period"], "period")]
    if Predictor.WEEKDAY in terms:
        parts.append(_dummies(data["weekday"], "weekday"))
    if Predictor.MONTH in terms:
        parts.append(_dummies(data["month"], "month"))
    if Predictor.MONTH_X_WEEKDAY in terms:
        month_d = _dummies(data["month"], "month")
        weekday_d = _dummies(data["weekday"], "weekday")
        inter = pd.DataFrame(
            {
                f"{m}:{w}": month_d[m] * weekday_d[w]
                for m in month_d.columns
                for w in weekday_d.columns
            },
            index=data.index,
        )
        # unobserved combinations
        parts.append(inter.loc[:, inter.any()])
    if Predictor.MAX_TEMP in terms:
        parts.append(data[["max_temp"]].astype(float))

    X = pd.concat(parts, axis=1)
    X, aliased = _drop_aliased(X, protected=[INTERCEPT, PERIOD_TERM])
    y = data["kwh"].astype(float)
    # n == p is an exact fit with no residual degrees of freedom
    if len(y) < X.shape[1]:
        raise ModelError(
            f"model could not be fit: {len(y)} observations for {X.shape[1]} parameters"
        )
    return X, y, aliased


def fit_model(frame: pd.DataFrame, predictors: Iterable[Predictor | str] = ()) -> ModelFit:
    """
    Ordinary least squares of daily kWh on the period indicator plus the
    selected predictors.

    - Baseline estimate is the intercept, comparison is intercept plus the
      period effect; their difference is the period coefficient.
    - Fitted values and residuals are attached to every row of `frame`
      (NaN for rows left out of the fit).
    """
    X, y, aliased = design_matrix(frame, predictors)
    logger.debug("Fitting OLS: %d rows x %d terms (%d aliased)", *X.shape, len(aliased))

    with warnings.catch_warnings():
        # exact fits give zero or undefined standard errors
        warnings.simplefilter("ignore", RuntimeWarning)
        res = sm.OLS(y, X).fit()
        coefs = pd.DataFrame(
            {
                "term": X.columns,
                "estimate": res.params.to_numpy(),
                "std_error": res.bse.to_numpy(),
                "statistic": res.tvalues.to_numpy(),
                "p_value": res.pvalues.to_numpy(),
            }
        )
        goodness = {
            "r_squared": float(res.rsquared),
            "adj_r_squared": float(res.rsquared_adj),
            "deviance": float(res.ssr),
            "sigma": float(np.sqrt(res.scale)) if res.df_resid > 0 else np.nan,
            "df_residual": float(res.df_resid),
            "nobs": int(res.nobs),
        }
    if aliased:
        coefs = pd.concat(
            [coefs, pd.DataFrame({"term": aliased, "estimate": np.nan})],
            ignore_index=True,
        )

    fitted = frame.copy()
    fitted["fitted"] = res.fittedvalues.reindex(frame.index)
    fitted["residual"] = fitted["kwh"] - fitted["fitted"]

    base = float(res.params[INTERCEPT])
    effect = float(res.params[PERIOD_TERM])
    return ModelFit(
        terms=[p.value for p in expand_predictors(predictors)],
        coefficients=coefs,
        estimates=PeriodEstimates(baseline=base, comparison=base + effect, difference=effect),
        fitted=fitted,
        goodness=goodness,
    )


def benchmark_summary(frame: pd.DataFrame) -> pd.DataFrame:
    """Per-period mean daily kWh against the mean matched benchmark."""
    out = (
        frame.groupby("period", observed=True, sort=True)
        .agg(
            days=("day", "size"),
            mean_kwh=("kwh", "mean"),
            benchmark_kwh=("benchmark_kwh", "mean"),
        )
        .reset_index()
    )
    out["difference_kwh"] = out["mean_kwh"] - out["benchmark_kwh"]
    out["difference_pct"] = np.where(
        out["benchmark_kwh"] > 0,
        out["difference_kwh"] / out["benchmark_kwh"] * 100.0,
        np.nan,
    )
    return out
