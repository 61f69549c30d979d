from . import (
    canon,
    exceptions,
    types,
    config,
    utils,
    ingest,
    validate,
    calendar,
    transform,
    layout,
    model,
    session,
)
from .session import Session
from .types import (
    ColorDimension,
    DateRange,
    Dimension,
    Geometry,
    Predictor,
    Selection,
)

__all__ = [
    "canon",
    "exceptions",
    "types",
    "config",
    "utils",
    "ingest",
    "validate",
    "calendar",
    "transform",
    "layout",
    "model",
    "session",
    "Session",
    "ColorDimension",
    "DateRange",
    "Dimension",
    "Geometry",
    "Predictor",
    "Selection",
]
