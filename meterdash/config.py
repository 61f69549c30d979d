from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path

from .exceptions import ConfigurationError, require


@dataclass(frozen=True)
class DashboardConfig:
    # Calendar layout
    calendar_columns: int = 4  # month blocks per row

    # Session defaults
    default_threshold: float = 20.0  # daily kWh
    default_household_size: int = 2
    default_period_days: int = 28
    default_group_by: str = "weekday"
    default_color_by: str = "work"

    def __post_init__(self):
        # JSON and widget values may arrive as strings
        try:
            object.__setattr__(self, "calendar_columns", int(self.calendar_columns))
            object.__setattr__(self, "default_threshold", float(self.default_threshold))
            object.__setattr__(self, "default_household_size", int(self.default_household_size))
            object.__setattr__(self, "default_period_days", int(self.default_period_days))
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid config value: {e}") from e
        require(self.calendar_columns >= 1, "calendar_columns must be >= 1", ConfigurationError)
        require(self.default_period_days >= 1, "default_period_days must be >= 1", ConfigurationError)


def default_config() -> DashboardConfig:
    return DashboardConfig()


def load_config(path: str | Path) -> DashboardConfig:
    """Overlay a JSON file of overrides onto the defaults."""
    with open(path, "r") as f:
        overrides = json.load(f)
    require(
        isinstance(overrides, dict),
        f"Config file {path} must contain a JSON object.",
        ConfigurationError,
    )
    known = {f.name for f in fields(DashboardConfig)}
    unknown = sorted(set(overrides) - known)
    require(not unknown, f"Unknown config keys: {', '.join(unknown)}", ConfigurationError)
    return replace(default_config(), **overrides)
