"""Grid-search hyperparameter tuning.

Each combination is scored by forecasting the validation slice from the
training slice of a chronological split. R2 is maximised; every other
metric is minimised. Any failure falls back to the method defaults.
"""

from __future__ import annotations

import itertools
import math
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from tsforecast.core.config import Settings, get_settings
from tsforecast.core.exceptions import ForecastEngineError, ValidationError
from tsforecast.core.logging import get_logger
from tsforecast.features.featuresets.schemas import Feature
from tsforecast.features.forecasting.schemas import ForecastMethod, ForecastOptions, Frequency
from tsforecast.features.forecasting.service import ForecastingService
from tsforecast.features.training.schemas import (
    TuningMetric,
    TuningMetrics,
    TuningOptions,
    TuningResult,
)
from tsforecast.features.validation.metrics import MetricsCalculator
from tsforecast.features.validation.splitter import split_time_series_data

logger = get_logger(__name__)

TUNING_METRICS: tuple[TuningMetric, ...] = ("mape", "rmse", "mae", "r2")
MAXIMISED_METRICS = frozenset({"r2"})

WINDOW_GRID = (3, 5, 7, 10)
ALPHA_GRID = (0.1, 0.2, 0.3, 0.5, 0.7, 0.9)
HOLT_ALPHA_GRID = (0.1, 0.3, 0.5, 0.7, 0.9)
BETA_GRID = (0.05, 0.1, 0.2, 0.3, 0.5)
GAMMA_GRID = BETA_GRID

SEASONAL_PERIODS: dict[Frequency, tuple[int, ...]] = {
    Frequency.DAILY: (7, 14),  # week, fortnight
    Frequency.WEEKLY: (4, 8, 13),  # month, two months, quarter
    Frequency.MONTHLY: (3, 4, 6, 12),
    Frequency.QUARTERLY: (4,),
    Frequency.YEARLY: (4, 5, 10),
}
FALLBACK_PERIODS = (7,)

DEFAULT_WINDOW = 5
DEFAULT_ALPHA = 0.3
DEFAULT_BETA = 0.1
DEFAULT_GAMMA = 0.1


def seasonal_periods_for_frequency(frequency: Frequency | str | None) -> tuple[int, ...]:
    """Candidate season lengths for a frequency."""
    return SEASONAL_PERIODS.get(Frequency.parse(frequency), FALLBACK_PERIODS)


def parameter_combinations(grid: Mapping[str, Sequence[Any]]) -> Iterator[dict[str, Any]]:
    """Cartesian product of a parameter grid.

    Example:
        >>> list(parameter_combinations({"alpha": [0.1, 0.3], "beta": [0.05]}))
        [{'alpha': 0.1, 'beta': 0.05}, {'alpha': 0.3, 'beta': 0.05}]
    """
    if not grid:
        return
    names = list(grid)
    for combo in itertools.product(*(grid[name] for name in names)):
        yield dict(zip(names, combo, strict=True))


def calculate_tuning_metrics(
    actual: Sequence[float | None],
    predicted: Sequence[float | None],
) -> TuningMetrics:
    """Score a validation forecast over the overlapping prefix of both series."""
    n = min(len(actual), len(predicted))
    actual, predicted = list(actual[:n]), list(predicted[:n])
    return TuningMetrics(
        mape=MetricsCalculator.mape(actual, predicted),
        rmse=MetricsCalculator.rmse(actual, predicted),
        mae=MetricsCalculator.mae(actual, predicted),
        r2=MetricsCalculator.r2(actual, predicted),
    )


def _is_better(candidate: float, incumbent: float | None, metric: str) -> bool:
    if incumbent is None:
        return True
    if metric in MAXIMISED_METRICS:
        return candidate > incumbent
    return candidate < incumbent


class HyperparameterTuner:
    """Grid search over the smoothing, window and season parameters.

    Example:
        >>> tuner = HyperparameterTuner()
        >>> result = tuner.tune(ForecastMethod.HOLT_WINTERS, dates, values, "monthly")
        >>> result.parameters
        {'alpha': 0.5, 'beta': 0.1, 'gamma': 0.05, 'seasonal_period': 12}
    """

    def __init__(
        self,
        forecasting: ForecastingService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.forecasting = forecasting or ForecastingService(self.settings)

    def parameter_grid(
        self,
        method: ForecastMethod,
        frequency: Frequency | str | None,
        options: TuningOptions | None = None,
    ) -> dict[str, tuple[Any, ...]]:
        """Values to try for each tunable parameter of a method.

        Naive and linear regression have nothing to tune and get an empty grid.
        """
        options = options or TuningOptions()
        periods = (
            (options.seasonal_period,)
            if options.seasonal_period
            else seasonal_periods_for_frequency(frequency)
        )
        betas = options.beta_values or BETA_GRID

        match method:
            case ForecastMethod.MOVING_AVERAGE:
                return {"window": options.window_values or WINDOW_GRID}
            case ForecastMethod.EXPONENTIAL_SMOOTHING:
                return {"alpha": options.alpha_values or ALPHA_GRID}
            case ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING:
                return {"alpha": options.alpha_values or HOLT_ALPHA_GRID, "beta": betas}
            case ForecastMethod.SEASONAL_NAIVE:
                return {"seasonal_period": periods}
            case ForecastMethod.HOLT_WINTERS:
                return {
                    "alpha": options.alpha_values or HOLT_ALPHA_GRID,
                    "beta": betas,
                    "gamma": options.gamma_values or GAMMA_GRID,
                    "seasonal_period": periods,
                }
        return {}

    def default_parameters(
        self,
        method: ForecastMethod,
        frequency: Frequency | str | None,
        options: TuningOptions | None = None,
    ) -> dict[str, Any]:
        """Parameters used when tuning is impossible or fails."""
        options = options or TuningOptions()
        period = options.seasonal_period or seasonal_periods_for_frequency(frequency)[0]

        match method:
            case ForecastMethod.MOVING_AVERAGE:
                return {"window": DEFAULT_WINDOW}
            case ForecastMethod.EXPONENTIAL_SMOOTHING:
                return {"alpha": DEFAULT_ALPHA}
            case ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING:
                return {"alpha": DEFAULT_ALPHA, "beta": DEFAULT_BETA}
            case ForecastMethod.SEASONAL_NAIVE:
                return {"seasonal_period": period}
            case ForecastMethod.HOLT_WINTERS:
                return {
                    "alpha": DEFAULT_ALPHA,
                    "beta": DEFAULT_BETA,
                    "gamma": DEFAULT_GAMMA,
                    "seasonal_period": period,
                }
        return {}

    def _primary_metric(self, options: TuningOptions) -> TuningMetric:
        metric = options.primary_metric or self.settings.tuning_primary_metric
        if metric not in TUNING_METRICS:
            raise ValidationError(
                f"Unknown tuning metric: {metric}",
                details={"metric": metric, "allowed": list(TUNING_METRICS)},
            )
        return metric

    def _defaults(
        self,
        method: ForecastMethod,
        frequency: Frequency | str | None,
        options: TuningOptions,
        metric: TuningMetric,
        reason: str,
    ) -> TuningResult:
        logger.info("training.tuning_defaults_used", method=method.value, reason=reason)
        return TuningResult(
            method=method,
            parameters=self.default_parameters(method, frequency, options),
            primary_metric=metric,
            used_defaults=True,
        )

    def tune(
        self,
        method: ForecastMethod | str,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
        features: Sequence[Feature] = (),
        options: TuningOptions | None = None,
    ) -> TuningResult:
        """Find the best parameters for a method.

        Args:
            method: Method to tune.
            time_values: Observed timestamps.
            values: Observed values.
            frequency: Series frequency.
            features: Features aligned with the series (split alongside).
            options: Grid overrides, metric and split ratio.

        Returns:
            TuningResult; ``used_defaults`` is set when the grid is empty, no
            combination could be scored, or the search failed.

        Raises:
            ValidationError: If the primary metric is unknown.
        """
        method = ForecastMethod(method)
        options = options or TuningOptions()
        metric = self._primary_metric(options)
        freq = Frequency.parse(frequency)

        grid = self.parameter_grid(method, freq, options)
        if not grid:
            return self._defaults(method, freq, options, metric, "empty grid")

        try:
            split = split_time_series_data(time_values, values, features, options.split_ratio)
        except ForecastEngineError as e:
            return self._defaults(method, freq, options, metric, str(e))

        train, validation = split.train, split.validation
        best_params: dict[str, Any] | None = None
        best_metrics: TuningMetrics | None = None
        best_score: float | None = None
        evaluated = 0

        for params in parameter_combinations(grid):
            try:
                forecast_options = ForecastOptions(
                    method=method, horizon=len(validation), **params
                )
                result = self.forecasting.generate_forecasts(
                    train.time_values, train.values, freq, forecast_options
                )
                forecast = result.methods.get(method)
                if forecast is None:
                    continue
                metrics = calculate_tuning_metrics(validation.values, forecast.values)
            except (ValueError, ArithmeticError) as e:
                logger.debug(
                    "training.tuning_combination_failed",
                    method=method.value,
                    params=params,
                    error=str(e),
                )
                continue

            score = getattr(metrics, metric)
            if score is None or not math.isfinite(score):
                continue
            evaluated += 1
            if _is_better(score, best_score, metric):
                best_score, best_params, best_metrics = score, params, metrics

        if best_params is None:
            return self._defaults(method, freq, options, metric, "no valid score")

        logger.info(
            "training.tuning_completed",
            method=method.value,
            metric=metric,
            score=best_score,
            parameters=best_params,
            evaluated=evaluated,
        )
        return TuningResult(
            method=method,
            parameters=best_params,
            metrics=best_metrics,
            primary_metric=metric,
            evaluated=evaluated,
        )
