"""Training: hyperparameter tuning and model fitting."""

from tsforecast.features.training.schemas import (
    FeatureImportance,
    TrainedModel,
    TrainingOptions,
    TuningMetrics,
    TuningOptions,
    TuningResult,
)
from tsforecast.features.training.service import TrainingService
from tsforecast.features.training.tuning import (
    HyperparameterTuner,
    calculate_tuning_metrics,
    parameter_combinations,
    seasonal_periods_for_frequency,
)

__all__ = [
    "FeatureImportance",
    "HyperparameterTuner",
    "TrainedModel",
    "TrainingOptions",
    "TrainingService",
    "TuningMetrics",
    "TuningOptions",
    "TuningResult",
    "calculate_tuning_metrics",
    "parameter_combinations",
    "seasonal_periods_for_frequency",
]
