"""Model evaluation, selection, comparison and retraining checks.

Evaluation always forecasts the evaluation window from the data that
precedes it, so a model is never scored on values it has seen.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any

import numpy as np

from tsforecast.core.config import Settings, get_settings
from tsforecast.core.exceptions import ModelSelectionError
from tsforecast.core.logging import get_logger
from tsforecast.features.forecasting.schemas import (
    ForecastMethod,
    ForecastOptions,
    Frequency,
    TimeSeries,
)
from tsforecast.features.forecasting.service import ForecastingService
from tsforecast.features.validation.metrics import MetricsCalculator
from tsforecast.features.validation.schemas import (
    ComparedMetrics,
    ComparisonMetric,
    EvaluationResult,
    ModelComparison,
    ModelSpec,
    RetrainingOptions,
    TrainedModelSpec,
)

logger = get_logger(__name__)

MIN_EVALUATION_POINTS = 3
INSUFFICIENT_EVALUATION_DATA = "Insufficient data for evaluation"

# Model parameters that map onto forecast options
_OPTION_FIELDS = frozenset({"alpha", "beta", "gamma", "seasonal_period", "window"})


def calculate_distribution_drift(
    old_values: Sequence[float | None],
    new_values: Sequence[float | None],
) -> float:
    """Drift score between two samples, clamped to [0, 1].

    Formula: (|mu_new - mu_old| / |mu_old| + |sd_new - sd_old| / sd_old) / 2
    where a zero baseline counts as change 1 if the new statistic is non-zero.
    Standard deviations are population (ddof=0).

    Args:
        old_values: Values the model was trained on.
        new_values: Newly observed values.

    Returns:
        Drift score; 0 when either sample has no valid value.
    """
    old = np.array([v for v in old_values if v is not None and not math.isnan(v)], dtype=np.float64)
    new = np.array([v for v in new_values if v is not None and not math.isnan(v)], dtype=np.float64)
    if len(old) == 0 or len(new) == 0:
        return 0.0

    def relative_change(before: float, after: float) -> float:
        if before != 0:
            return abs((after - before) / before)
        return 1.0 if after != 0 else 0.0

    mean_change = relative_change(float(old.mean()), float(new.mean()))
    std_change = relative_change(float(old.std()), float(new.std()))
    return min(1.0, (mean_change + std_change) / 2)


def select_best_model(results: Sequence[EvaluationResult]) -> EvaluationResult:
    """Pick the best evaluated model.

    Lowest MAPE wins; without any MAPE, lowest RMSE, then lowest MAE, then
    the first model that has metrics at all. Ties keep the earlier model.

    Args:
        results: Evaluation results.

    Returns:
        Best result.

    Raises:
        ModelSelectionError: If no result has metrics.
    """
    valid = [r for r in results if r.metrics is not None]
    if not valid:
        raise ModelSelectionError(details={"candidates": len(results)})

    for metric in ("mape", "rmse", "mae"):
        scored = [
            (r, value)
            for r in valid
            if r.metrics is not None
            and (value := r.metrics.get(metric)) is not None
            and not math.isnan(value)
        ]
        if scored:
            return min(scored, key=lambda item: item[1])[0]
    return valid[0]


def _improvement(existing: float, new: float) -> float:
    if existing != 0:
        return (existing - new) / existing * 100
    return 0.0 if new == 0 else -math.inf


class ModelEvaluator:
    """Scores models on held-out windows.

    Example:
        >>> evaluator = ModelEvaluator()
        >>> result = evaluator.evaluate_model(model, history=train, actual=validation)
        >>> best = select_best_model([result, ...])
    """

    def __init__(
        self,
        forecasting: ForecastingService | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the evaluator.

        Args:
            forecasting: Forecasting service used to produce forecasts.
            settings: Engine settings (defaults to the cached settings).
        """
        self.settings = settings or get_settings()
        self.forecasting = forecasting or ForecastingService(self.settings)

    def forecast_from_model(
        self,
        model: ModelSpec,
        history: TimeSeries,
        horizon: int,
        frequency: Frequency | str | None = None,
    ) -> list[float]:
        """Forecast ``horizon`` steps past ``history`` with a model's method and parameters.

        Falls back to repeating the last history value (0 for empty history)
        when the method produces no forecast, e.g. too little history or a
        seasonal method without two full seasons.

        Args:
            model: Model to forecast with.
            history: Data preceding the forecast window.
            horizon: Number of steps.
            frequency: Series frequency (history frequency when None).

        Returns:
            Forecast values.
        """
        freq = Frequency.parse(frequency) if frequency is not None else history.frequency
        options_params = {k: v for k, v in model.parameters.items() if k in _OPTION_FIELDS}
        try:
            options = ForecastOptions(method=model.method, horizon=horizon, **options_params)
            result = self.forecasting.generate_forecasts(
                history.time_values, history.values, freq, options
            )
            return list(result.methods[model.method].values)
        except (KeyError, ValueError, ArithmeticError) as e:
            logger.debug(
                "validation.forecast_fallback",
                method=ForecastMethod(model.method).value,
                history_points=len(history),
                error=str(e),
            )
            last = history.values[-1] if history.values else 0.0
            return [last] * horizon

    def evaluate_model(
        self,
        model: ModelSpec,
        history: TimeSeries,
        actual: TimeSeries,
        frequency: Frequency | str | None = None,
    ) -> EvaluationResult:
        """Forecast the evaluation window from its history and score it.

        Args:
            model: Model to evaluate.
            history: Data preceding the evaluation window.
            actual: Evaluation window.
            frequency: Series frequency.

        Returns:
            EvaluationResult with all seven metrics, or an error entry when
            the window has fewer than 3 points.
        """
        if len(actual) < MIN_EVALUATION_POINTS:
            return EvaluationResult(
                method=model.method,
                parameters=dict(model.parameters),
                error=INSUFFICIENT_EVALUATION_DATA,
            )

        try:
            forecasts = self.forecast_from_model(model, history, len(actual), frequency)
            metrics = MetricsCalculator.calculate_all(actual.values, forecasts)
        except (ValueError, ArithmeticError) as e:
            logger.warning(
                "validation.evaluation_failed",
                method=ForecastMethod(model.method).value,
                error=str(e),
            )
            return EvaluationResult(
                method=model.method, parameters=dict(model.parameters), error=str(e)
            )

        return EvaluationResult(
            method=model.method,
            parameters=dict(model.parameters),
            metrics=metrics,
            forecast_values=forecasts,
        )

    def evaluate_models(
        self,
        models: Mapping[ForecastMethod, ModelSpec],
        history: TimeSeries,
        actual: TimeSeries,
        frequency: Frequency | str | None = None,
    ) -> dict[ForecastMethod, EvaluationResult]:
        """Evaluate every model on the same window."""
        results = {
            method: self.evaluate_model(model, history, actual, frequency)
            for method, model in models.items()
        }
        logger.info(
            "validation.models_evaluated",
            models=[m.value for m in results],
            evaluation_points=len(actual),
        )
        return results

    def compare_models(
        self,
        existing: ModelSpec,
        new: ModelSpec,
        history: TimeSeries,
        actual: TimeSeries,
        frequency: Frequency | str | None = None,
    ) -> ModelComparison:
        """Compare an existing model with a candidate on the same window.

        The primary metric is the first of MAPE, RMSE, MAE that both models
        can compute. Improvement is (existing - new) / existing * 100; with a
        zero baseline it is 0 if the candidate is also 0, else -inf.

        Args:
            existing: Currently deployed model.
            new: Candidate model.
            history: Data preceding the comparison window.
            actual: Comparison window.
            frequency: Series frequency.

        Returns:
            ModelComparison.
        """
        horizon = len(actual)
        scored: dict[str, ComparedMetrics] = {}
        for label, model in (("existing", existing), ("new", new)):
            forecasts = self.forecast_from_model(model, history, horizon, frequency)
            scored[label] = ComparedMetrics(
                mape=MetricsCalculator.mape(actual.values, forecasts),
                rmse=MetricsCalculator.rmse(actual.values, forecasts),
                mae=MetricsCalculator.mae(actual.values, forecasts),
            )

        comparison = ModelComparison(
            metrics={"existing": scored["existing"], "new": scored["new"]}
        )
        metric: ComparisonMetric
        for metric in ("mape", "rmse", "mae"):
            old_value = getattr(scored["existing"], metric)
            new_value = getattr(scored["new"], metric)
            if old_value is not None and new_value is not None:
                comparison.primary_metric = metric
                comparison.is_improvement = new_value < old_value
                comparison.improvement_percentage = _improvement(old_value, new_value)
                break

        logger.info(
            "validation.models_compared",
            existing_method=ForecastMethod(existing.method).value,
            new_method=ForecastMethod(new.method).value,
            primary_metric=comparison.primary_metric,
            is_improvement=comparison.is_improvement,
        )
        return comparison

    def check_retraining_need(
        self,
        model: TrainedModelSpec,
        historical: TimeSeries,
        new_time_values: Sequence[str],
        new_values: Sequence[float],
        options: RetrainingOptions | None = None,
    ) -> bool:
        """Decide whether a model should be retrained on new data.

        In order: forced -> True; fewer than ``min_new_data_points`` new
        points -> False; drift above threshold -> True; MAPE on the new data
        at least ``error_ratio`` times the training MAPE -> True; model older
        than ``max_model_age_days`` -> True; otherwise False.

        Args:
            model: Trained model with metrics and timestamp.
            historical: Data the model was trained on.
            new_time_values: Timestamps of the new observations.
            new_values: New observations.
            options: Thresholds (settings defaults when unset).

        Returns:
            Whether to retrain.
        """
        options = options or RetrainingOptions()
        drift_threshold = (
            options.drift_threshold
            if options.drift_threshold is not None
            else self.settings.retrain_drift_threshold
        )
        min_new_points = (
            options.min_new_data_points
            if options.min_new_data_points is not None
            else self.settings.retrain_min_new_points
        )
        error_ratio = (
            options.error_ratio
            if options.error_ratio is not None
            else self.settings.retrain_error_ratio
        )
        method = ForecastMethod(model.method).value

        if options.forced_retrain:
            logger.info("validation.retrain_needed", method=method, reason="forced")
            return True

        if len(new_values) < min_new_points:
            return False

        drift = calculate_distribution_drift(historical.values, new_values)
        if drift > drift_threshold:
            logger.info("validation.retrain_needed", method=method, reason="drift", drift=drift)
            return True

        forecasts = self.forecast_from_model(model, historical, len(new_values))
        new_mape = MetricsCalculator.mape(list(new_values), forecasts)
        trained_mape = (model.metrics or {}).get("mape")
        if new_mape is not None and trained_mape:
            ratio = new_mape / trained_mape
            if ratio >= error_ratio:
                logger.info(
                    "validation.retrain_needed",
                    method=method,
                    reason="error_ratio",
                    error_ratio=round(ratio, 4),
                )
                return True

        if options.max_model_age_days is not None and model.timestamp is not None:
            trained_at = model.timestamp
            if trained_at.tzinfo is None:
                trained_at = trained_at.replace(tzinfo=UTC)
            age_days = (datetime.now(UTC) - trained_at).total_seconds() / 86400
            if age_days > options.max_model_age_days:
                logger.info(
                    "validation.retrain_needed", method=method, reason="age", age_days=age_days
                )
                return True

        return False


def evaluation_summary(results: Mapping[Any, EvaluationResult]) -> dict[str, float | None]:
    """MAPE per evaluated method, for logging."""
    return {
        ForecastMethod(r.method).value: (r.metrics.mape if r.metrics else None)
        for r in results.values()
    }
