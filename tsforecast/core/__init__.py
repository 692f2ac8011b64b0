"""Core infrastructure: config, logging, exceptions."""

from tsforecast.core.config import Settings, get_settings
from tsforecast.core.exceptions import (
    ForecastEngineError,
    InsufficientDataError,
    ModelSelectionError,
    NotFoundError,
    ValidationError,
)
from tsforecast.core.logging import bind_run_id, get_logger, run_id_ctx

__all__ = [
    "ForecastEngineError",
    "InsufficientDataError",
    "ModelSelectionError",
    "NotFoundError",
    "Settings",
    "ValidationError",
    "bind_run_id",
    "get_logger",
    "get_settings",
    "run_id_ctx",
]
