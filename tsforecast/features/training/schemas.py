"""Pydantic schemas for hyperparameter tuning and model training."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tsforecast.features.forecasting.schemas import ALL_METHODS, ForecastMethod

TuningMetric = Literal["mape", "rmse", "mae", "r2"]


# =============================================================================
# Tuning
# =============================================================================


class TuningOptions(BaseModel):
    """Grid overrides and scoring for hyperparameter search.

    Unset grids use the built-in defaults for each method.

    Attributes:
        window_values: Moving-average windows to try.
        alpha_values: Level smoothing factors to try.
        beta_values: Trend smoothing factors to try.
        gamma_values: Seasonal smoothing factors to try.
        seasonal_period: Fixed season length (frequency candidates when unset).
        primary_metric: Metric to optimize (settings default when unset).
        split_ratio: Train/validation/test ratio for scoring.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    window_values: tuple[int, ...] | None = None
    alpha_values: tuple[float, ...] | None = None
    beta_values: tuple[float, ...] | None = None
    gamma_values: tuple[float, ...] | None = None
    seasonal_period: int | None = Field(default=None, ge=1)
    primary_metric: TuningMetric | None = None
    split_ratio: tuple[float, float, float] = (0.7, 0.3, 0.0)

    @field_validator("alpha_values", "beta_values", "gamma_values")
    @classmethod
    def validate_smoothing_grid(cls, v: tuple[float, ...] | None) -> tuple[float, ...] | None:
        """Smoothing factors must lie in (0, 1]."""
        if v is not None and any(not 0 < x <= 1 for x in v):
            raise ValueError("Smoothing factors must be in (0, 1]")
        return v


class TuningMetrics(BaseModel):
    """Scores of one parameter combination on the validation slice."""

    mape: float | None = None
    rmse: float | None = None
    mae: float | None = None
    r2: float | None = None


class TuningResult(BaseModel):
    """Outcome of a grid search.

    Attributes:
        method: Tuned method.
        parameters: Best parameters (defaults when nothing could be scored).
        metrics: Scores of the best parameters.
        primary_metric: Metric that was optimized.
        evaluated: Number of combinations that produced a score.
        used_defaults: Whether the defaults were returned.
    """

    method: ForecastMethod
    parameters: dict[str, Any] = Field(default_factory=dict)
    metrics: TuningMetrics | None = None
    primary_metric: TuningMetric = "mape"
    evaluated: int = 0
    used_defaults: bool = False


# =============================================================================
# Training
# =============================================================================


class TrainingOptions(BaseModel):
    """Options for training one or more methods.

    Attributes:
        methods: Methods to train.
        horizon: Forecast horizon used while training (frequency default).
        enable_tuning: Grid-search parameters instead of using defaults.
        tuning: Tuning options.
        method_parameters: Explicit parameters per method (override defaults).
        window: Default moving-average window.
        alpha: Default level smoothing factor.
        beta: Default trend smoothing factor in [0, 1].
        gamma: Default seasonal smoothing factor in [0, 1].
        seasonal_period: Default season length (detected when unset).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    methods: tuple[ForecastMethod, ...] = ALL_METHODS
    horizon: int | None = Field(default=None, ge=1, le=1000)
    enable_tuning: bool = False
    tuning: TuningOptions = Field(default_factory=TuningOptions)
    method_parameters: dict[ForecastMethod, dict[str, float | int]] = Field(default_factory=dict)
    window: int | None = Field(default=None, ge=1)
    alpha: float | None = Field(default=None, gt=0.0, le=1.0)
    beta: float | None = Field(default=None, ge=0.0, le=1.0)
    gamma: float | None = Field(default=None, ge=0.0, le=1.0)
    seasonal_period: int | None = Field(default=None, ge=1)


class FeatureImportance(BaseModel):
    """Importance of a feature to a model (0 for the classical methods)."""

    name: str
    importance: float = 0.0
    description: str = ""


class TrainedModel(BaseModel):
    """A trained forecasting model.

    Attributes:
        id: Registry id (assigned on first save).
        method: Forecast method.
        parameters: Parameters the method runs with.
        metrics: Training metrics (``accuracy`` after training; test metrics
            once evaluated by the pipeline).
        features: Features seen at training time.
        timestamp: When the model was trained.
        version: Semantic version.
        status: "trained" or "failed".
        error: Why training failed.
    """

    id: str | None = None
    method: ForecastMethod
    parameters: dict[str, Any] = Field(default_factory=dict)
    metrics: dict[str, float | None] = Field(default_factory=dict)
    features: list[FeatureImportance] = Field(default_factory=list)
    timestamp: datetime | None = None
    version: str = "1.0.0"
    status: Literal["trained", "failed"] = "trained"
    error: str | None = None

    @property
    def is_trained(self) -> bool:
        return self.status == "trained"
