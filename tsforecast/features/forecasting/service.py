"""Forecast orchestration: run every applicable method and pick the best.

Orchestrates:
- Horizon and future-date generation from the series frequency
- Seasonal period detection (or an explicit override)
- Per-method forecasts and holdout accuracy
- Best-method selection by minimum accuracy (MAPE)
- Confidence intervals from walk-forward one-step errors

CRITICAL: A method that fails numerically is logged and omitted; it never
aborts the other methods.
"""

from __future__ import annotations

import math
import time
from collections.abc import Sequence
from typing import Any

import numpy as np

from tsforecast.core.config import Settings, get_settings
from tsforecast.core.logging import get_logger
from tsforecast.features.forecasting.models import LinearRegressionForecaster, model_factory
from tsforecast.features.forecasting.schemas import (
    ALL_METHODS,
    ConfidenceIntervals,
    ForecastMethod,
    ForecastOptions,
    ForecastResult,
    Frequency,
    MethodForecast,
)
from tsforecast.features.forecasting.seasonality import detect_seasonal_period
from tsforecast.features.forecasting.timeutils import default_horizon, generate_future_dates
from tsforecast.features.forecasting.walkforward import prediction_errors

logger = get_logger(__name__)

INSUFFICIENT_DATA_REASON = "Insufficient data for forecasting"

# Interval margin grows by 10% per step ahead
INTERVAL_WIDENING_PER_STEP = 0.1


def critical_value(confidence_level: float) -> float:
    """Two-sided normal critical value for a confidence level.

    Exact values for 90/95/99%. Levels in [0.8, 0.99) are linearly
    interpolated between neighbouring anchors; anything else uses 1.96.

    Args:
        confidence_level: Confidence level as a fraction (e.g. 0.95).

    Returns:
        Critical z value.
    """
    exact = {90: 1.645, 95: 1.96, 99: 2.576}
    rounded = round(confidence_level * 100)
    if rounded in exact:
        return exact[rounded]
    if 0.9 <= confidence_level < 0.95:
        return 1.645 + (1.96 - 1.645) * ((confidence_level - 0.9) / 0.05)
    if 0.95 <= confidence_level < 0.99:
        return 1.96 + (2.576 - 1.96) * ((confidence_level - 0.95) / 0.04)
    if 0.8 <= confidence_level < 0.9:
        return 1.28 + (1.645 - 1.28) * ((confidence_level - 0.8) / 0.1)
    return 1.96


def select_best_method(methods: dict[ForecastMethod, MethodForecast]) -> ForecastMethod | None:
    """Method with the minimum non-null accuracy (first wins on ties)."""
    scored = [(method, fc.accuracy) for method, fc in methods.items() if fc.accuracy is not None]
    if not scored:
        return None
    return min(scored, key=lambda item: item[1])[0]


class ForecastingService:
    """Runs the algorithm library against a series.

    Example:
        >>> service = ForecastingService()
        >>> result = service.generate_forecasts(dates, values, "daily")
        >>> result = service.generate_confidence_intervals(values, result, 0.95)
        >>> result.best.confidence_intervals.upper
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the service.

        Args:
            settings: Engine settings (defaults to the cached settings).
        """
        self.settings = settings or get_settings()

    def method_parameters(
        self,
        method: ForecastMethod,
        n_points: int,
        options: ForecastOptions,
        seasonal_period: int,
    ) -> dict[str, Any]:
        """Resolve the parameters a method runs with.

        Args:
            method: Forecast method.
            n_points: Length of the observed series.
            options: Caller options.
            seasonal_period: Resolved season length.

        Returns:
            Parameter dictionary accepted by ``model_factory``.
        """
        defaults = self.settings
        alpha = options.alpha if options.alpha is not None else defaults.forecast_default_alpha
        beta = options.beta if options.beta is not None else defaults.forecast_default_beta
        gamma = options.gamma if options.gamma is not None else defaults.forecast_default_gamma

        match method:
            case ForecastMethod.NAIVE | ForecastMethod.LINEAR_REGRESSION:
                return {}
            case ForecastMethod.MOVING_AVERAGE:
                if options.window is not None:
                    return {"window": options.window}
                return {"window": max(1, min(5, n_points // 3))}
            case ForecastMethod.EXPONENTIAL_SMOOTHING:
                return {"alpha": alpha}
            case ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING:
                return {"alpha": alpha, "beta": beta}
            case ForecastMethod.SEASONAL_NAIVE:
                return {"seasonal_period": seasonal_period}
            case ForecastMethod.HOLT_WINTERS:
                return {
                    "alpha": alpha,
                    "beta": beta,
                    "gamma": gamma,
                    "seasonal_period": seasonal_period,
                }
        return {}

    def _run_method(
        self,
        method: ForecastMethod,
        values: np.ndarray[Any, np.dtype[np.floating[Any]]],
        horizon: int,
        params: dict[str, Any],
    ) -> MethodForecast:
        forecaster = model_factory(method, **params)
        forecast_values = forecaster.forecast(values, horizon)
        accuracy = forecaster.accuracy(values)
        if accuracy is not None and not math.isfinite(accuracy):
            accuracy = None

        coefficients: dict[str, float] = {}
        if method == ForecastMethod.LINEAR_REGRESSION and len(values) >= 2:
            slope, intercept = LinearRegressionForecaster.coefficients(values)
            coefficients = {"slope": slope, "intercept": intercept}

        description = method.description
        if params:
            rendered = ", ".join(f"{key}: {value}" for key, value in params.items())
            description = f"{description} ({rendered})"

        return MethodForecast(
            name=method.display_name,
            description=description,
            values=forecast_values.tolist(),
            accuracy=accuracy,
            parameters=params,
            coefficients=coefficients,
        )

    def generate_forecasts(
        self,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
        options: ForecastOptions | None = None,
    ) -> ForecastResult:
        """Forecast a series with every applicable method.

        Seasonal methods only run when the series spans two full seasons.

        Args:
            time_values: Observed timestamps.
            values: Observed values.
            frequency: Series frequency.
            options: Forecast options (method, horizon, smoothing parameters).

        Returns:
            ForecastResult. With fewer than 3 points no method runs and
            ``reason`` explains why.
        """
        start_time = time.perf_counter()
        options = options or ForecastOptions()
        freq = Frequency.parse(frequency)
        horizon = options.horizon if options.horizon is not None else default_horizon(freq)
        y = np.asarray(values, dtype=np.float64)
        n = len(y)

        config_hash = options.config_hash()
        if n < self.settings.forecast_min_points:
            logger.info(
                "forecasting.insufficient_data",
                config_hash=config_hash,
                n_points=n,
                horizon=horizon,
            )
            return ForecastResult(horizon_periods=horizon, reason=INSUFFICIENT_DATA_REASON)

        horizon_dates = (
            generate_future_dates(time_values[-1], freq, horizon, time_values)
            if len(time_values) > 0
            else []
        )
        seasonal_period = (
            options.seasonal_period
            if options.seasonal_period is not None
            else detect_seasonal_period(y, freq)
        )
        result = ForecastResult(
            horizon_periods=horizon,
            horizon_dates=horizon_dates,
            seasonal_period=seasonal_period,
        )

        methods = ALL_METHODS if options.method is None else (options.method,)
        for method in methods:
            if method.is_seasonal and n < 2 * seasonal_period:
                logger.debug(
                    "forecasting.method_skipped",
                    method=method.value,
                    n_points=n,
                    seasonal_period=seasonal_period,
                )
                continue
            params = self.method_parameters(method, n, options, seasonal_period)
            try:
                result.methods[method] = self._run_method(method, y, horizon, params)
            except (ArithmeticError, ValueError) as e:
                logger.warning(
                    "forecasting.method_failed",
                    method=method.value,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        result.best_method = select_best_method(result.methods)

        logger.info(
            "forecasting.forecasts_generated",
            config_hash=config_hash,
            n_points=n,
            frequency=freq.value,
            horizon=horizon,
            methods=[m.value for m in result.methods],
            best_method=result.best_method.value if result.best_method else None,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return result

    def generate_confidence_intervals(
        self,
        values: Sequence[float],
        forecasts: ForecastResult,
        confidence_level: float | None = None,
    ) -> ForecastResult:
        """Attach prediction intervals to the best method's forecast.

        Formula:
            rmse = sqrt(mean(e^2)) over walk-forward one-step errors e
            margin[i] = z * rmse * (1 + 0.1 * i)

        Args:
            values: Observed values the forecasts were made from.
            forecasts: Result of ``generate_forecasts``.
            confidence_level: Fraction in (0, 1); settings default when unset.

        Returns:
            A copy of ``forecasts`` with intervals on the best method. The input
            is returned unchanged when there is no best method, no one-step
            error could be computed, or interval computation fails.
        """
        level = (
            confidence_level
            if confidence_level is not None
            else self.settings.forecast_default_confidence_level
        )
        result = forecasts.model_copy(deep=True)
        if result.best_method is None:
            return result

        try:
            best = result.methods[result.best_method]
            errors = prediction_errors(values, result.best_method, best.parameters)
            if not errors:
                logger.warning(
                    "forecasting.intervals_skipped",
                    method=result.best_method.value,
                    reason="no prediction errors",
                )
                return forecasts

            rmse = math.sqrt(sum(e * e for e in errors) / len(errors))
            z = critical_value(level)
            point = np.asarray(best.values, dtype=np.float64)
            margin = z * rmse * (1 + INTERVAL_WIDENING_PER_STEP * np.arange(len(point)))

            best.confidence_intervals = ConfidenceIntervals(
                level=level * 100,
                lower=(point - margin).tolist(),
                upper=(point + margin).tolist(),
                rmse=rmse,
            )
        except (ArithmeticError, ValueError, KeyError) as e:
            logger.warning(
                "forecasting.intervals_failed",
                method=result.best_method.value,
                error=str(e),
            )
            return forecasts

        logger.info(
            "forecasting.intervals_generated",
            method=result.best_method.value,
            confidence_level=level,
            rmse=round(rmse, 6),
        )
        return result

    def forecast_with_intervals(
        self,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
        options: ForecastOptions | None = None,
        confidence_level: float | None = None,
    ) -> ForecastResult:
        """Forecast and attach intervals in one call (the HTTP contract)."""
        forecasts = self.generate_forecasts(time_values, values, frequency, options)
        return self.generate_confidence_intervals(values, forecasts, confidence_level)
