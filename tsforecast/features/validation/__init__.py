"""Validation: time-respecting splits, cross-validation, metrics and model selection."""

from tsforecast.features.validation.cross_validation import CrossValidator, create_folds
from tsforecast.features.validation.metrics import MetricsCalculator
from tsforecast.features.validation.schemas import (
    METRIC_NAMES,
    CVFold,
    CVOptions,
    CVResult,
    DataSplit,
    ErrorMetrics,
    EvaluationResult,
    ForecastMetrics,
    ModelComparison,
    RetrainingOptions,
    RollingWindow,
    SplitPart,
)
from tsforecast.features.validation.selection import (
    ModelEvaluator,
    calculate_distribution_drift,
    select_best_model,
)
from tsforecast.features.validation.splitter import (
    create_rolling_windows,
    split_time_series_data,
    stratified_split,
)

__all__ = [
    "METRIC_NAMES",
    "CVFold",
    "CVOptions",
    "CVResult",
    "CrossValidator",
    "DataSplit",
    "ErrorMetrics",
    "EvaluationResult",
    "ForecastMetrics",
    "MetricsCalculator",
    "ModelComparison",
    "ModelEvaluator",
    "RetrainingOptions",
    "RollingWindow",
    "SplitPart",
    "calculate_distribution_drift",
    "create_folds",
    "create_rolling_windows",
    "select_best_model",
    "split_time_series_data",
    "stratified_split",
]
