"""Pydantic schemas for end-to-end pipeline runs."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from tsforecast.features.featuresets.schemas import Feature, FeatureConfig
from tsforecast.features.forecasting.schemas import ForecastResult, Frequency
from tsforecast.features.training.schemas import TrainedModel, TrainingOptions
from tsforecast.features.validation.schemas import (
    ForecastMetrics,
    ModelComparison,
    RetrainingOptions,
)


class PipelineOptions(BaseModel):
    """Options for a pipeline run.

    Attributes:
        split_ratio: Train/validation/test ratios (settings default when unset).
        horizon: Final forecast horizon (frequency default when unset).
        confidence_level: Interval confidence level (settings default when unset).
        version: Version of the registered model (settings default when unset).
        features: Feature configuration.
        training: Training options.
        retraining: Thresholds for the retraining check.
        frequency: Frequency override when retraining.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    split_ratio: tuple[float, float, float] | None = None
    horizon: int | None = Field(default=None, ge=1, le=1000)
    confidence_level: float | None = Field(default=None, gt=0.0, lt=1.0)
    version: str | None = Field(default=None, pattern=r"^\d+\.\d+\.\d+$")
    features: FeatureConfig | None = None
    training: TrainingOptions = Field(default_factory=TrainingOptions)
    retraining: RetrainingOptions = Field(default_factory=RetrainingOptions)
    frequency: Frequency | None = None


class PipelineResult(BaseModel):
    """Outcome of a pipeline run.

    Attributes:
        model_id: Registry id of the registered model.
        model: Registered model (test metrics, full feature list).
        train_metrics: Training metrics of the selected model.
        validation_metrics: Metrics on the validation slice.
        test_metrics: Metrics on the test slice (None when it is too short).
        forecasts: Final forecasts with confidence intervals.
        features: Features generated for the whole series.
    """

    model_id: str
    model: TrainedModel
    train_metrics: dict[str, float | None] = Field(default_factory=dict)
    validation_metrics: ForecastMetrics | None = None
    test_metrics: ForecastMetrics | None = None
    forecasts: ForecastResult
    features: list[Feature] = Field(default_factory=list)


class RetrainResult(BaseModel):
    """Outcome of a retraining job.

    Attributes:
        model_id: Id of the model that was checked.
        retrained: Whether the registry record was replaced.
        reason: Why the model was kept.
        comparison: Existing vs candidate comparison, when a candidate was built.
        new_model_id: Registry id of the candidate model.
        new_model: Candidate model.
        forecasts: Candidate forecasts.
    """

    model_id: str
    retrained: bool
    reason: str | None = None
    comparison: ModelComparison | None = None
    new_model_id: str | None = None
    new_model: TrainedModel | None = None
    forecasts: ForecastResult | None = None
