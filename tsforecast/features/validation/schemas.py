"""Pydantic schemas for splitting, cross-validation and model selection.

Option models are immutable (frozen=True) and reject unknown fields.
Result models serialize to JSON with ``model_dump(mode="json")``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field

from tsforecast.features.featuresets.schemas import Feature
from tsforecast.features.forecasting.schemas import ALL_METHODS, ForecastMethod

METRIC_NAMES: tuple[str, ...] = ("mape", "rmse", "mae", "r2", "mase", "smape", "bias")

ComparisonMetric = Literal["mape", "rmse", "mae"]


# =============================================================================
# Model Protocols
# =============================================================================


class ModelSpec(Protocol):
    """Anything that names a method and the parameters to run it with."""

    method: ForecastMethod
    parameters: dict[str, Any]


class TrainedModelSpec(ModelSpec, Protocol):
    """A model that also carries training-time metrics and a timestamp."""

    metrics: dict[str, float | None]
    timestamp: datetime | None


# =============================================================================
# Metrics
# =============================================================================


class ForecastMetrics(BaseModel):
    """Accuracy metrics of a forecast against actuals (None = not computable)."""

    mape: float | None = None
    rmse: float | None = None
    mae: float | None = None
    r2: float | None = None
    mase: float | None = None
    smape: float | None = None
    bias: float | None = None

    def get(self, name: str) -> float | None:
        """Metric value by name."""
        value: float | None = getattr(self, name)
        return value


class ErrorMetrics(BaseModel):
    """Error summary used when checking a model against new data."""

    mse: float | None = None
    rmse: float | None = None
    mae: float | None = None
    mape: float | None = None
    bias: float | None = None


# =============================================================================
# Splits
# =============================================================================


class SplitPart(BaseModel):
    """One partition of a split: timestamps, values and aligned features."""

    time_values: list[str] = Field(default_factory=list)
    values: list[float] = Field(default_factory=list)
    features: list[Feature] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.values)


class DataSplit(BaseModel):
    """Train/validation/test partitions of a series."""

    train: SplitPart
    validation: SplitPart
    test: SplitPart


class RollingWindow(BaseModel):
    """Fixed-length window over a series.

    Attributes:
        start_index: Index of the first observation (inclusive).
        end_index: Index of the last observation (inclusive).
    """

    time_values: list[str]
    values: list[float]
    start_index: int
    end_index: int


# =============================================================================
# Cross-Validation
# =============================================================================


class CVFold(BaseModel):
    """Walk-forward fold: all data before the test window is training data."""

    train_time_values: list[str]
    train_values: list[float]
    test_time_values: list[str]
    test_values: list[float]


class CVOptions(BaseModel):
    """Options for walk-forward cross-validation.

    Attributes:
        min_train_size: Minimum training length (max(10, 0.3 n) when unset).
        horizon: Test window length per fold.
        num_folds: Number of folds (settings default when unset).
        methods: Methods to evaluate.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    min_train_size: int | None = Field(default=None, ge=1)
    horizon: int = Field(default=1, ge=1)
    num_folds: int | None = Field(default=None, ge=1)
    methods: tuple[ForecastMethod, ...] = ALL_METHODS


class FoldMethodResult(BaseModel):
    """Outcome of one method on one fold."""

    metrics: ForecastMetrics | None = None
    forecasts: list[float] = Field(default_factory=list)
    error: str | None = None


class FoldResult(BaseModel):
    """Per-method outcomes of one fold (fold numbers start at 1)."""

    fold: int
    method_results: dict[ForecastMethod, FoldMethodResult] = Field(default_factory=dict)


class CVMethodSummary(BaseModel):
    """Per-fold and averaged metrics of a method."""

    name: str
    average_metrics: ForecastMetrics = Field(default_factory=ForecastMetrics)
    fold_metrics: list[ForecastMetrics] = Field(default_factory=list)


class CVResult(BaseModel):
    """Cross-validation outcome across methods and folds."""

    methods: dict[ForecastMethod, CVMethodSummary] = Field(default_factory=dict)
    best_method: ForecastMethod | None = None
    metrics: list[str] = Field(default_factory=lambda: list(METRIC_NAMES))
    fold_results: list[FoldResult] = Field(default_factory=list)


# =============================================================================
# Evaluation & Selection
# =============================================================================


class EvaluationResult(BaseModel):
    """Metrics of one model on an evaluation window.

    ``metrics`` is None when the model could not be evaluated; ``error``
    then says why.
    """

    method: ForecastMethod
    parameters: dict[str, Any] = Field(default_factory=dict)
    metrics: ForecastMetrics | None = None
    forecast_values: list[float] = Field(default_factory=list)
    error: str | None = None


class ComparedMetrics(BaseModel):
    """Metrics used to compare two models."""

    mape: float | None = None
    rmse: float | None = None
    mae: float | None = None


class ModelComparison(BaseModel):
    """Existing versus candidate model on the same window.

    Attributes:
        is_improvement: Candidate is strictly better on the primary metric.
        improvement_percentage: (existing - new) / existing * 100.
        primary_metric: First metric both models could compute.
        metrics: Metrics keyed by "existing" and "new".
    """

    is_improvement: bool = False
    improvement_percentage: float = 0.0
    primary_metric: ComparisonMetric = "mape"
    metrics: dict[Literal["existing", "new"], ComparedMetrics] = Field(default_factory=dict)


class RetrainingOptions(BaseModel):
    """Thresholds for the retraining check (settings defaults when unset).

    Attributes:
        drift_threshold: Drift score above which to retrain.
        min_new_data_points: Fewer new points never trigger retraining.
        error_ratio: New-data MAPE / training MAPE at or above which to retrain.
        max_model_age_days: Retrain models older than this.
        forced_retrain: Retrain unconditionally.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    drift_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    min_new_data_points: int | None = Field(default=None, ge=0)
    error_ratio: float | None = Field(default=None, gt=0.0)
    max_model_age_days: float | None = Field(default=None, gt=0.0)
    forced_retrain: bool = False
