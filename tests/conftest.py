from datetime import date

import pandas as pd
import pytest

from meterdash import canon, ingest


def make_wide(dates, kwh=1.0, meter_id="M1"):
    """Wide meter export: one row per date, slot columns '1'..'48'."""
    rows = []
    for d in dates:
        value = kwh(d) if callable(kwh) else kwh
        day = d if isinstance(d, str) else str(pd.Timestamp(d).date())
        row = {"meter_id": meter_id, "date": day}
        row.update({c: value for c in canon.SLOT_COLUMNS})
        rows.append(row)
    return pd.DataFrame(rows)


def make_weather(dates, max_temp=25.0):
    ds = [str(pd.Timestamp(d).date()) for d in dates]
    n = len(ds)
    temps = [max_temp(d) for d in ds] if callable(max_temp) else [max_temp] * n
    return ingest.weather_from_series(
        rainfall=pd.DataFrame({"date": ds, "rainfall": [1.0] * n, "rainfall_quality": "Y"}),
        max_temp=pd.DataFrame({"date": ds, "max_temp": temps, "max_temp_quality": "Y"}),
        min_temp=pd.DataFrame({"date": ds, "min_temp": [12.0] * n, "min_temp_quality": "Y"}),
        solar=pd.DataFrame({"date": ds, "solar": [20.0] * n}),
    )


@pytest.fixture
def benchmark_records():
    rows = []
    for size in canon.HOUSEHOLD_SIZES:
        for i, season in enumerate(canon.BENCHMARK_SEASONS):
            rows.append({"household_size": size, "season": season, "kwh": 10.0 * size + i})
    return rows


@pytest.fixture
def two_day_wide():
    return make_wide(["2018-01-01", "2018-01-02"], kwh=1.0)


@pytest.fixture
def two_day_base(two_day_wide):
    readings = ingest.from_wide(two_day_wide)
    return ingest.build_base(readings)


@pytest.fixture
def two_week_base(benchmark_records):
    """2018-01-01..2018-01-14: 10 kWh/day in week one, 15 kWh/day in week two."""
    dates = pd.date_range("2018-01-01", "2018-01-14", freq="D")
    wide = make_wide(dates, kwh=lambda d: (10.0 if d.day <= 7 else 15.0) / canon.SLOTS_PER_DAY)
    readings = ingest.from_wide(wide)
    return ingest.build_base(
        readings,
        weather=make_weather(dates),
        holidays=[date(2018, 1, 1)],
        benchmarks=ingest.benchmarks_from_records(benchmark_records),
    )


@pytest.fixture
def year_base():
    """Daily usage over 2018 with usage varying by weekday and temperature."""
    dates = pd.date_range("2018-01-01", "2018-12-31", freq="D")
    wide = make_wide(dates, kwh=lambda d: (8.0 + d.dayofweek) / canon.SLOTS_PER_DAY)
    readings = ingest.from_wide(wide)
    return ingest.build_base(
        readings,
        weather=make_weather(dates, max_temp=lambda d: 20.0 + (pd.Timestamp(d).dayofyear % 9)),
    )
