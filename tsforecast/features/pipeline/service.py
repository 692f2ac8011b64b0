"""End-to-end forecasting pipeline.

Steps:
1. Generate features for the whole series
2. Split chronologically into train/validation/test
3. Train every configured method on the train slice
4. Evaluate on the validation slice (forecast from train)
5. Select the best model
6. Test it on the test slice (forecast from train + validation)
7. Register it with its test metrics and save its training data
8. Forecast the future with the best method and attach intervals

CRITICAL: Evaluation windows are always forecast from the data preceding
them; no step sees values from its own evaluation window.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import UTC, datetime

from tsforecast.core.config import Settings, get_settings
from tsforecast.core.exceptions import NotFoundError, ValidationError
from tsforecast.core.logging import bind_run_id, get_logger
from tsforecast.features.featuresets.service import FeatureEngineeringService
from tsforecast.features.forecasting.schemas import ForecastOptions, Frequency, TimeSeries
from tsforecast.features.forecasting.service import ForecastingService
from tsforecast.features.pipeline.schemas import PipelineOptions, PipelineResult, RetrainResult
from tsforecast.features.registry.service import ModelRegistry
from tsforecast.features.training.schemas import FeatureImportance
from tsforecast.features.training.service import PARAMETER_FIELDS, TrainingService
from tsforecast.features.validation.selection import (
    ModelEvaluator,
    evaluation_summary,
    select_best_model,
)
from tsforecast.features.validation.splitter import split_time_series_data

logger = get_logger(__name__)

NO_CHANGE_REASON = "No significant change in data patterns"
NO_IMPROVEMENT_REASON = "New model does not show significant improvement"


def increment_version(version: str) -> str:
    """Bump the patch component of a semantic version.

    Example:
        >>> increment_version("1.2.3")
        '1.2.4'

    Raises:
        ValidationError: If the version is not MAJOR.MINOR.PATCH.
    """
    parts = version.split(".")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise ValidationError(
            f"Invalid semantic version: {version!r}", details={"version": version}
        )
    major, minor, patch = parts
    return f"{major}.{minor}.{int(patch) + 1}"


class PipelineService:
    """Runs the full train/select/register/forecast workflow.

    Example:
        >>> registry = ModelRegistry(RegistryConfig.from_settings())
        >>> pipeline = PipelineService(registry)
        >>> result = await pipeline.run_pipeline(dates, values, "daily")
        >>> result.forecasts.best.values
    """

    def __init__(
        self,
        registry: ModelRegistry,
        forecasting: ForecastingService | None = None,
        training: TrainingService | None = None,
        evaluator: ModelEvaluator | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            registry: Registry the selected models are persisted to.
            forecasting: Forecasting service shared by all steps.
            training: Training service.
            evaluator: Model evaluator.
            settings: Engine settings (defaults to the cached settings).
        """
        self.settings = settings or get_settings()
        self.registry = registry
        self.forecasting = forecasting or ForecastingService(self.settings)
        self.training = training or TrainingService(self.forecasting, settings=self.settings)
        self.evaluator = evaluator or ModelEvaluator(self.forecasting, self.settings)

    async def run_pipeline(
        self,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
        options: PipelineOptions | None = None,
    ) -> PipelineResult:
        """Train, select, register and forecast.

        Args:
            time_values: Observed timestamps.
            values: Observed values.
            frequency: Series frequency.
            options: Pipeline options.

        Returns:
            PipelineResult.

        Raises:
            ValidationError: If the split ratio is invalid.
            ModelSelectionError: If no trained model could be evaluated.
        """
        options = options or PipelineOptions()
        freq = Frequency.parse(frequency)

        with bind_run_id() as run_id:
            start_time = time.perf_counter()
            logger.info(
                "pipeline.run_started", run_id=run_id, n_points=len(values), frequency=freq.value
            )

            features = FeatureEngineeringService(options.features).generate_features(
                time_values, values, freq
            )

            split = split_time_series_data(time_values, values, features, options.split_ratio)
            train = TimeSeries(
                time_values=split.train.time_values, values=split.train.values, frequency=freq
            )
            validation = TimeSeries(
                time_values=split.validation.time_values,
                values=split.validation.values,
                frequency=freq,
            )
            test = TimeSeries(
                time_values=split.test.time_values, values=split.test.values, frequency=freq
            )
            logger.info(
                "pipeline.data_split",
                train=len(train),
                validation=len(validation),
                test=len(test),
            )

            models = self.training.train_models(
                train.time_values, train.values, freq, split.train.features, options.training
            )
            trained = {method: model for method, model in models.items() if model.is_trained}

            validation_results = self.evaluator.evaluate_models(trained, train, validation, freq)
            best_result = select_best_model(list(validation_results.values()))
            best_model = trained[best_result.method]
            logger.info(
                "pipeline.model_selected",
                method=best_model.method.value,
                validation_mape=evaluation_summary(validation_results),
            )

            test_result = self.evaluator.evaluate_model(
                best_model, train.concat(validation), test, freq
            )

            registered = best_model.model_copy(
                update={
                    "metrics": test_result.metrics.model_dump() if test_result.metrics else {},
                    "features": [
                        FeatureImportance(name=f.name, description=f.description)
                        for f in features
                    ],
                    "timestamp": datetime.now(UTC),
                    "version": options.version or self.settings.registry_default_version,
                }
            )
            model_id = await self.registry.register(registered)
            registered = registered.model_copy(update={"id": model_id})
            await self.registry.save_model_data(
                model_id,
                TimeSeries(time_values=list(time_values), values=list(values), frequency=freq),
            )

            forecast_params = {
                k: v for k, v in best_model.parameters.items() if k in PARAMETER_FIELDS
            }
            forecasts = self.forecasting.forecast_with_intervals(
                time_values,
                values,
                freq,
                ForecastOptions(
                    method=best_model.method, horizon=options.horizon, **forecast_params
                ),
                options.confidence_level,
            )

            logger.info(
                "pipeline.run_completed",
                model_id=model_id,
                method=best_model.method.value,
                test_mape=test_result.metrics.mape if test_result.metrics else None,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )

        return PipelineResult(
            model_id=model_id,
            model=registered,
            train_metrics=best_model.metrics,
            validation_metrics=best_result.metrics,
            test_metrics=test_result.metrics,
            forecasts=forecasts,
            features=features,
        )

    async def retrain_model(
        self,
        model_id: str,
        new_time_values: Sequence[str],
        new_values: Sequence[float],
        options: PipelineOptions | None = None,
    ) -> RetrainResult:
        """Retrain a registered model on its training data plus new observations.

        The candidate is built by ``run_pipeline``, so it is registered under its
        own id whether or not it is accepted; a rejected candidate stays in the
        registry. It replaces the record under ``model_id`` only when it beats
        the existing model on the new observations.

        Args:
            model_id: Registry id of the model.
            new_time_values: Timestamps observed since training.
            new_values: Values observed since training.
            options: Pipeline options (``retraining`` holds the thresholds).

        Returns:
            RetrainResult.

        Raises:
            NotFoundError: If the model is not registered.
        """
        options = options or PipelineOptions()
        existing = await self.registry.get(model_id)
        if existing is None:
            raise NotFoundError(
                f"Model with ID {model_id} not found in registry", details={"model_id": model_id}
            )

        historical = await self.registry.get_model_data(model_id) or TimeSeries(
            frequency=options.frequency or Frequency.IRREGULAR
        )
        freq = options.frequency or historical.frequency
        historical = historical.model_copy(update={"frequency": freq})
        new_data = TimeSeries(
            time_values=list(new_time_values), values=list(new_values), frequency=freq
        )

        if not self.evaluator.check_retraining_need(
            existing, historical, new_data.time_values, new_data.values, options.retraining
        ):
            logger.info("pipeline.retrain_skipped", model_id=model_id, reason=NO_CHANGE_REASON)
            return RetrainResult(model_id=model_id, retrained=False, reason=NO_CHANGE_REASON)

        combined = historical.concat(new_data)
        candidate = await self.run_pipeline(
            combined.time_values,
            combined.values,
            freq,
            options.model_copy(update={"version": increment_version(existing.version)}),
        )

        comparison = self.evaluator.compare_models(
            existing, candidate.model, historical, new_data, freq
        )
        if not comparison.is_improvement:
            logger.info(
                "pipeline.retrain_rejected",
                model_id=model_id,
                improvement_percentage=comparison.improvement_percentage,
            )
            return RetrainResult(
                model_id=model_id,
                retrained=False,
                reason=NO_IMPROVEMENT_REASON,
                comparison=comparison,
                new_model_id=candidate.model_id,
            )

        await self.registry.update(model_id, candidate.model)
        await self.registry.save_model_data(model_id, combined)
        logger.info(
            "pipeline.model_retrained",
            model_id=model_id,
            new_model_id=candidate.model_id,
            improvement_percentage=comparison.improvement_percentage,
        )
        return RetrainResult(
            model_id=model_id,
            retrained=True,
            comparison=comparison,
            new_model_id=candidate.model_id,
            new_model=candidate.model,
            forecasts=candidate.forecasts,
        )
