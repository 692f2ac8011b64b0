"""Model training service.

Training a classical method means fixing its parameters (defaults, explicit
overrides or a grid search) and recording in-sample accuracy together with
the features seen at training time.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

from tsforecast.core.config import Settings, get_settings
from tsforecast.core.exceptions import ForecastEngineError, InsufficientDataError, ValidationError
from tsforecast.core.logging import get_logger
from tsforecast.features.featuresets.schemas import Feature
from tsforecast.features.forecasting.schemas import (
    ForecastMethod,
    ForecastOptions,
    Frequency,
    TimeSeries,
)
from tsforecast.features.forecasting.service import ForecastingService
from tsforecast.features.forecasting.timeutils import default_horizon
from tsforecast.features.training.schemas import (
    FeatureImportance,
    TrainedModel,
    TrainingOptions,
)
from tsforecast.features.training.tuning import HyperparameterTuner

logger = get_logger(__name__)

# Model parameters that map onto forecast options
PARAMETER_FIELDS = ("window", "alpha", "beta", "gamma", "seasonal_period")


class TrainingService:
    """Trains, retrains and (de)serialises forecasting models.

    Example:
        >>> service = TrainingService()
        >>> models = service.train_models(dates, values, "daily", features)
        >>> models[ForecastMethod.HOLT_WINTERS].metrics["accuracy"]
    """

    def __init__(
        self,
        forecasting: ForecastingService | None = None,
        tuner: HyperparameterTuner | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            forecasting: Forecasting service used to fit the methods.
            tuner: Hyperparameter tuner used when tuning is enabled.
            settings: Engine settings (defaults to the cached settings).
        """
        self.settings = settings or get_settings()
        self.forecasting = forecasting or ForecastingService(self.settings)
        self.tuner = tuner or HyperparameterTuner(self.forecasting, self.settings)

    def get_default_parameters(
        self,
        method: ForecastMethod,
        options: TrainingOptions | None = None,
    ) -> dict[str, Any]:
        """Parameters a method trains with when tuning is disabled.

        Option values override the configured defaults. An unset season
        length is left out so it is detected from the data.
        """
        options = options or TrainingOptions()
        defaults = self.settings
        alpha = options.alpha if options.alpha is not None else defaults.forecast_default_alpha
        beta = options.beta if options.beta is not None else defaults.forecast_default_beta
        gamma = options.gamma if options.gamma is not None else defaults.forecast_default_gamma

        match method:
            case ForecastMethod.MOVING_AVERAGE:
                window = options.window if options.window is not None else 5
                params: dict[str, Any] = {"window": window}
            case ForecastMethod.EXPONENTIAL_SMOOTHING:
                params = {"alpha": alpha}
            case ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING:
                params = {"alpha": alpha, "beta": beta}
            case ForecastMethod.SEASONAL_NAIVE:
                params = {"seasonal_period": options.seasonal_period}
            case ForecastMethod.HOLT_WINTERS:
                params = {
                    "alpha": alpha,
                    "beta": beta,
                    "gamma": gamma,
                    "seasonal_period": options.seasonal_period,
                }
            case _:
                params = {}
        return {k: v for k, v in params.items() if v is not None}

    def train_model(
        self,
        method: ForecastMethod | str,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
        features: Sequence[Feature] = (),
        parameters: Mapping[str, Any] | None = None,
        options: TrainingOptions | None = None,
    ) -> TrainedModel:
        """Fit a single method.

        Args:
            method: Method to train.
            time_values: Observed timestamps.
            values: Observed values.
            frequency: Series frequency.
            features: Features computed for the series.
            parameters: Method parameters (defaults when None).
            options: Training options (horizon, defaults).

        Returns:
            TrainedModel whose parameters are the ones the method actually
            ran with, including a detected season length.

        Raises:
            InsufficientDataError: If the method produced no forecast.
            ValueError: If a parameter is unknown or out of range.
        """
        method = ForecastMethod(method)
        options = options or TrainingOptions()
        params = dict(parameters) if parameters is not None else self.get_default_parameters(
            method, options
        )
        unknown = sorted(set(params) - set(PARAMETER_FIELDS))
        if unknown:
            raise ValidationError(
                f"Unknown parameters for {method.value}: {unknown}",
                details={"method": method.value, "parameters": unknown},
            )

        horizon = options.horizon or default_horizon(frequency)
        result = self.forecasting.generate_forecasts(
            time_values,
            values,
            frequency,
            ForecastOptions(method=method, horizon=horizon, **params),
        )
        forecast = result.methods.get(method)
        if forecast is None:
            raise InsufficientDataError(
                f"{method.display_name} produced no forecast",
                details={
                    "method": method.value,
                    "n_points": len(values),
                    "reason": result.reason,
                },
            )

        return TrainedModel(
            method=method,
            parameters=dict(forecast.parameters),
            metrics={"accuracy": forecast.accuracy},
            features=[
                FeatureImportance(name=f.name, importance=0.0, description=f.description)
                for f in features
            ],
            timestamp=datetime.now(UTC),
            version=self.settings.registry_default_version,
        )

    def train_models(
        self,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
        features: Sequence[Feature] = (),
        options: TrainingOptions | None = None,
    ) -> dict[ForecastMethod, TrainedModel]:
        """Train every configured method.

        A method that cannot be trained is recorded with status "failed" and
        the error message; the other methods are unaffected.
        """
        start_time = time.perf_counter()
        options = options or TrainingOptions()
        models: dict[ForecastMethod, TrainedModel] = {}

        for method in options.methods:
            try:
                if method in options.method_parameters:
                    params = dict(options.method_parameters[method])
                elif options.enable_tuning:
                    params = self.tuner.tune(
                        method, time_values, values, frequency, features, options.tuning
                    ).parameters
                else:
                    params = self.get_default_parameters(method, options)
                models[method] = self.train_model(
                    method, time_values, values, frequency, features, params, options
                )
            except (ForecastEngineError, ValueError, ArithmeticError) as e:
                logger.warning(
                    "training.model_failed",
                    method=method.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                models[method] = TrainedModel(method=method, status="failed", error=str(e))

        logger.info(
            "training.models_trained",
            n_points=len(values),
            trained=[m.value for m, model in models.items() if model.is_trained],
            failed=[m.value for m, model in models.items() if not model.is_trained],
            tuning=options.enable_tuning,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return models

    def retrain_model(
        self,
        model: TrainedModel,
        new_time_values: Sequence[str],
        new_values: Sequence[float],
        previous: TimeSeries | None = None,
        features: Sequence[Feature] = (),
        options: TrainingOptions | None = None,
    ) -> TrainedModel:
        """Retrain a model on its previous data plus new observations.

        The model keeps its method, parameters, id and version.
        """
        previous = previous or TimeSeries()
        combined = previous.concat(
            TimeSeries(time_values=list(new_time_values), values=list(new_values))
        )
        retrained = self.train_model(
            model.method,
            combined.time_values,
            combined.values,
            combined.frequency,
            features,
            {k: v for k, v in model.parameters.items() if k in PARAMETER_FIELDS},
            options,
        )
        logger.info(
            "training.model_retrained",
            method=model.method.value,
            model_id=model.id,
            n_points=len(combined),
        )
        return retrained.model_copy(update={"id": model.id, "version": model.version})

    def export_model(self, model: TrainedModel) -> dict[str, Any]:
        """Portable JSON-compatible representation of a model."""
        return model.model_dump(
            mode="json",
            include={"id", "method", "parameters", "metrics", "timestamp", "version"},
        )

    def import_model(self, data: Mapping[str, Any]) -> TrainedModel:
        """Rebuild a model from ``export_model`` output.

        Raises:
            ValidationError: If the method is missing or unknown.
        """
        if not data.get("method"):
            raise ValidationError("Invalid model data: method is required")
        try:
            method = ForecastMethod(data["method"])
        except ValueError as e:
            raise ValidationError(
                f"Invalid model data: unknown method {data['method']!r}",
                details={"method": data["method"]},
            ) from e

        return TrainedModel(
            id=data.get("id"),
            method=method,
            parameters=dict(data.get("parameters") or {}),
            metrics=dict(data.get("metrics") or {}),
            timestamp=data.get("timestamp") or datetime.now(UTC),
            version=data.get("version") or self.settings.registry_default_version,
        )
