from __future__ import annotations
from typing import Final, Dict

SLOTS_PER_DAY: Final[int] = 48
CADENCE_MIN: Final[int] = 30
SLOT_COLUMNS: Final[list[str]] = [str(i) for i in range(1, SLOTS_PER_DAY + 1)]
DATE_FORMAT: Final[str] = "%Y-%m-%d"

# Candidate names for the meter identifier column in raw exports
COMMON_METER_NAMES = ("meter_id", "meter", "nmi", "id")

# Columns of the long interval table
READING_COLS: Final[list[str]] = ["date", "slot", "time", "kwh"]
CALENDAR_COLS: Final[list[str]] = ["weekday", "month", "year", "season", "work"]
WEATHER_COLS: Final[list[str]] = [
    "rainfall",
    "rainfall_quality",
    "max_temp",
    "max_temp_quality",
    "min_temp",
    "min_temp_quality",
    "solar",
]

# Declared (display) orders
WEEKDAYS: Final[list[str]] = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTHS: Final[list[str]] = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]
SEASONS: Final[list[str]] = ["summer", "autumn", "winter", "spring"]
WORK: Final[list[str]] = ["work day", "holiday"]
PERIODS: Final[list[str]] = ["baseline", "comparison"]

# Southern-hemisphere month grouping
SEASON_BY_MONTH: Dict[int, str] = {
    12: "summer", 1: "summer", 2: "summer",
    3: "autumn", 4: "autumn", 5: "autumn",
    6: "winter", 7: "winter", 8: "winter",
    9: "spring", 10: "spring", 11: "spring",
}

BENCHMARK_SEASONS: Final[list[str]] = [*SEASONS, "annual"]
HOUSEHOLD_SIZES: Final[list[int]] = [1, 2, 3, 4, 5]
