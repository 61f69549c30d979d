from __future__ import annotations
import logging
from datetime import date
from typing import IO, Iterable, Optional

import pandas as pd
from pydantic import ValidationError

from . import canon, calendar, utils, validate
from .exceptions import IngestError
from .types import BaseFrame, BaseTable, BenchmarkRecord

logger = logging.getLogger(__name__)


def _auto_rename(df: pd.DataFrame) -> pd.DataFrame:
    new = df.copy()
    new.columns = [str(c).strip() for c in new.columns]
    cols = {c.lower(): c for c in new.columns}

    if "date" not in new.columns:
        if "date" not in cols:
            raise IngestError("No 'date' column found in meter data.")
        new = new.rename(columns={cols["date"]: "date"})

    if "meter_id" not in new.columns:
        mcol = next((cols[k] for k in canon.COMMON_METER_NAMES if k in cols), None)
        if mcol is not None:
            new = new.rename(columns={mcol: "meter_id"})
    return new


def _select_meter(df: pd.DataFrame, meter_id: Optional[str]) -> tuple[pd.DataFrame, Optional[str]]:
    """Keep one meter or raise if the choice is ambiguous."""
    if "meter_id" not in df.columns:
        return df, meter_id
    ids = df["meter_id"].astype(str).unique()
    if meter_id is None:
        if len(ids) > 1:
            raise IngestError(
                f"Multiple meters detected: {', '.join(ids)}. Please specify a meter id."
            )
        return df, (ids[0] if len(ids) else None)
    if str(meter_id) not in ids:
        raise IngestError(
            f"Specified meter {meter_id} is not in the dataset. Available meters: {', '.join(ids)}"
        )
    return df[df["meter_id"].astype(str) == str(meter_id)], str(meter_id)


def _parse_kwh(values: pd.Series) -> pd.Series:
    """Blank cells become NaN; anything else must be a non-negative number."""
    text = values.where(values.notna(), "").astype(str).str.strip()
    blank = text.eq("")
    num = pd.to_numeric(text.where(~blank), errors="coerce")
    bad = num.isna() & ~blank
    if bad.any():
        raise IngestError(f"Non-numeric kWh values: {list(text[bad].unique()[:5])}")
    if (num < 0).any():
        raise IngestError("Negative kWh values detected; readings must be non-negative.")
    return num.astype(float)


def from_wide(df: pd.DataFrame, *, meter_id: Optional[str] = None) -> pd.DataFrame:
    """
    Parse a wide meter export (meter id, date, '1'..'48') into a long
    interval table with columns ['date', 'slot', 'time', 'kwh'] sorted by
    date then slot. Other meters are discarded.
    """
    df = _auto_rename(df)
    df, chosen = _select_meter(df, meter_id)
    utils.require_columns(df, canon.SLOT_COLUMNS, exc=IngestError)

    dates = utils.parse_dates(df["date"].astype(str).str.strip())
    if dates.duplicated().any():
        dupes = sorted(set(dates[dates.duplicated()]))
        raise IngestError(f"Duplicate dates for one meter: {dupes[:5]}")

    wide = df[canon.SLOT_COLUMNS].copy()
    wide.insert(0, "date", dates.to_numpy())
    long = wide.melt(id_vars="date", var_name="slot", value_name="kwh")
    long["slot"] = long["slot"].astype(int)
    long["kwh"] = _parse_kwh(long["kwh"])
    long["time"] = utils.slot_times(long["slot"])

    out = long.sort_values(["date", "slot"], kind="stable").reset_index(drop=True)
    logger.info(
        "Loaded %d days (%d intervals) for meter %s", len(df), len(out), chosen
    )
    return out[canon.READING_COLS]


def read_meter_csv(
    file_like: IO[str] | str, *, meter_id: Optional[str] = None
) -> pd.DataFrame:
    """Read a wide meter CSV export and normalise it via from_wide."""
    raw = pd.read_csv(file_like, dtype=str, keep_default_na=False)
    return from_wide(raw, meter_id=meter_id)


def _daily_series(df: pd.DataFrame, cols: list[str], name: str) -> pd.DataFrame:
    if df is None:
        raise IngestError(f"Missing weather series: {name}")
    utils.require_columns(df, ["date", *cols], exc=IngestError)
    out = df[["date", *cols]].copy()
    out["date"] = utils.parse_dates(out["date"].astype(str))
    for c in cols:
        if not c.endswith("_quality"):
            out[c] = pd.to_numeric(out[c], errors="raise").astype(float)
    if out["date"].duplicated().any():
        raise IngestError(f"Duplicate dates in weather series: {name}")
    return out


def weather_from_series(
    rainfall: pd.DataFrame,
    max_temp: pd.DataFrame,
    min_temp: pd.DataFrame,
    solar: pd.DataFrame,
) -> pd.DataFrame:
    """
    Inner-join the four daily weather series on date.

    Expected columns:
      rainfall: date, rainfall, rainfall_quality
      max_temp: date, max_temp, max_temp_quality
      min_temp: date, min_temp, min_temp_quality
      solar:    date, solar
    """
    parts = [
        _daily_series(rainfall, ["rainfall", "rainfall_quality"], "rainfall"),
        _daily_series(max_temp, ["max_temp", "max_temp_quality"], "max_temp"),
        _daily_series(min_temp, ["min_temp", "min_temp_quality"], "min_temp"),
        _daily_series(solar, ["solar"], "solar"),
    ]
    out = parts[0]
    for p in parts[1:]:
        out = out.merge(p, on="date", how="inner", validate="one_to_one")
    return out.sort_values("date").reset_index(drop=True)[["date", *canon.WEATHER_COLS]]


def holidays_from_dates(dates: Iterable[date | str]) -> frozenset[date]:
    values = pd.Series([str(d) for d in dates], dtype=object)
    if values.empty:
        return frozenset()
    return frozenset(utils.parse_dates(values))


def benchmarks_from_records(records: Iterable[dict] | pd.DataFrame) -> pd.DataFrame:
    """Validate benchmark rows and return them as a DataFrame."""
    if isinstance(records, pd.DataFrame):
        records = records.to_dict(orient="records")
    try:
        rows = [BenchmarkRecord(**r).model_dump() for r in records]
    except ValidationError as e:
        raise IngestError(f"Invalid benchmark table: {e}") from e
    out = pd.DataFrame(rows, columns=["household_size", "season", "kwh"])
    if out.duplicated(["household_size", "season"]).any():
        raise IngestError("Benchmark table has duplicate (household_size, season) rows.")
    return out


def join_weather(readings: pd.DataFrame, weather: Optional[pd.DataFrame]) -> pd.DataFrame:
    """Left-join daily weather onto intervals; dates without weather get nulls."""
    if weather is None:
        weather = pd.DataFrame(columns=["date", *canon.WEATHER_COLS])
    weather = weather[["date", *canon.WEATHER_COLS]]
    out = readings.merge(weather, on="date", how="left", validate="many_to_one")
    for c in ("rainfall", "max_temp", "min_temp", "solar"):
        out[c] = out[c].astype(float)
    return out


def build_base(
    readings: pd.DataFrame,
    *,
    weather: Optional[pd.DataFrame] = None,
    holidays: Iterable[date] = (),
    benchmarks: Optional[pd.DataFrame] = None,
    meter_id: Optional[str] = None,
) -> BaseTable:
    """
    Build the immutable base table shared by every engine:
    long readings -> calendar enrichment -> weather left join.
    """
    hols = frozenset(holidays)
    enriched = calendar.enrich(readings, hols)
    joined = join_weather(enriched, weather)
    joined = joined.sort_values(["date", "slot"], kind="stable").reset_index(drop=True)
    validate.assert_base(joined)
    if benchmarks is not None:
        benchmarks = benchmarks_from_records(benchmarks)
    logger.info(
        "Base table ready: %d intervals, %s..%s",
        len(joined),
        joined["date"].min(),
        joined["date"].max(),
    )
    return BaseTable(
        frame=BaseFrame(joined),
        holidays=hols,
        benchmarks=benchmarks,
        meter_id=meter_id,
    )
