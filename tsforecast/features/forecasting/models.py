"""Classical forecasting algorithms with a unified interface.

All forecasters implement a common interface:
- fit(y) -> self
- predict(horizon) -> np.ndarray
- forecast(values, horizon) -> np.ndarray   (stateless fit + predict)
- accuracy(values) -> float | None          (holdout MAPE, lower is better)
- one_step(prefix) -> float                 (next-value forecast for walk-forward)
- get_params() -> dict
- set_params(**params) -> self

Accuracy contract shared by every method: split the input at floor(n/2),
forecast the second half from the first, and return MAPE in percent over
non-zero actuals. None when fewer than 5 points or no usable pair.

CRITICAL: All algorithms are deterministic and pure over their input.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

import numpy as np

from tsforecast.features.forecasting.schemas import ForecastMethod

FloatArray = np.ndarray[Any, np.dtype[np.floating[Any]]]

MIN_ACCURACY_POINTS = 5

DEFAULT_ALPHA = 0.3
DEFAULT_BETA = 0.1
DEFAULT_GAMMA = 0.1
DEFAULT_SEASONAL_PERIOD = 7


def holdout_mape(actuals: FloatArray, forecasts: FloatArray) -> float | None:
    """MAPE in percent over pairs whose actual value is non-zero.

    Args:
        actuals: Held-out observed values.
        forecasts: Forecasts aligned with actuals.

    Returns:
        Mean absolute percentage error, or None if no actual is non-zero.
    """
    mask = actuals != 0
    if not np.any(mask):
        return None
    return float(np.mean(np.abs((actuals[mask] - forecasts[mask]) / actuals[mask])) * 100.0)


def linear_regression(values: FloatArray) -> tuple[float, float]:
    """Ordinary least squares of value against index 0..n-1.

    Args:
        values: Observed values (at least 2).

    Returns:
        Tuple of (slope, intercept).
    """
    n = len(values)
    x = np.arange(n, dtype=np.float64)
    sum_x = float(np.sum(x))
    sum_y = float(np.sum(values))
    sum_xy = float(np.sum(x * values))
    sum_xx = float(np.sum(x * x))
    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def holt_smooth(values: list[float], alpha: float, beta: float) -> tuple[float, float]:
    """Run Holt's level/trend recursion over a series of at least 2 points.

    Formula:
        level[0] = y[0], trend[0] = y[1] - y[0]
        level[t] = alpha * y[t] + (1 - alpha) * (level[t-1] + trend[t-1])
        trend[t] = beta * (level[t] - level[t-1]) + (1 - beta) * trend[t-1]

    Returns:
        Tuple of (final level, final trend).
    """
    level = values[0]
    trend = values[1] - values[0]
    for x in values[1:]:
        old_level = level
        level = alpha * x + (1 - alpha) * (level + trend)
        trend = beta * (level - old_level) + (1 - beta) * trend
    return level, trend


class BaseForecaster(ABC):
    """Abstract base class for all forecasting algorithms.

    Subclasses implement ``_forecast`` as a pure function of the observed
    values; fitting only stores the series so predict() can be called later.

    Attributes:
        method: Forecast method this class implements.
    """

    method: ClassVar[ForecastMethod]
    param_names: ClassVar[tuple[str, ...]] = ()

    def __init__(self) -> None:
        """Initialize the forecaster."""
        self._is_fitted = False
        self._values: FloatArray | None = None

    @abstractmethod
    def _forecast(self, values: FloatArray, horizon: int) -> FloatArray:
        """Forecast ``horizon`` steps beyond ``values``."""

    def fit(self, y: FloatArray | list[float]) -> BaseForecaster:
        """Store the observed series.

        Args:
            y: Observed values (1D).

        Returns:
            self (for method chaining).
        """
        self._values = np.asarray(y, dtype=np.float64)
        self._is_fitted = True
        return self

    def predict(self, horizon: int) -> FloatArray:
        """Forecast beyond the fitted series.

        Args:
            horizon: Number of steps to forecast.

        Returns:
            Array of forecasts with shape [horizon].

        Raises:
            RuntimeError: If model has not been fitted.
        """
        if not self._is_fitted or self._values is None:
            raise RuntimeError("Model must be fitted before predict")
        return self._forecast(self._values, horizon)

    def forecast(self, values: FloatArray | list[float], horizon: int) -> FloatArray:
        """Stateless forecast of ``horizon`` steps beyond ``values``."""
        return self._forecast(np.asarray(values, dtype=np.float64), horizon)

    def accuracy(self, values: FloatArray | list[float]) -> float | None:
        """Holdout MAPE of this method on the given series.

        Args:
            values: Observed values.

        Returns:
            MAPE in percent, or None when there is too little data.
        """
        y = np.asarray(values, dtype=np.float64)
        if len(y) < MIN_ACCURACY_POINTS:
            return None
        split = len(y) // 2
        train, test = y[:split], y[split:]
        return holdout_mape(test, self._forecast(train, len(test)))

    def one_step(self, prefix: FloatArray | list[float]) -> float:
        """Forecast the value immediately following ``prefix``."""
        return float(self._forecast(np.asarray(prefix, dtype=np.float64), 1)[0])

    def get_params(self) -> dict[str, Any]:
        """Get model parameters.

        Returns:
            Dictionary of parameter names to values.
        """
        return {name: getattr(self, name) for name in self.param_names}

    def set_params(self, **params: Any) -> BaseForecaster:  # noqa: ANN401
        """Set model parameters, ignoring None values.

        Args:
            **params: Parameter names and values to set.

        Returns:
            self (for method chaining).

        Raises:
            ValueError: If a parameter is not accepted by this method.
        """
        for key, value in params.items():
            if key not in self.param_names:
                raise ValueError(f"Unknown parameter for {self.method.value}: {key}")
            if value is not None:
                setattr(self, key, value)
        return self

    @property
    def is_fitted(self) -> bool:
        """Check if the model has been fitted."""
        return self._is_fitted


class NaiveForecaster(BaseForecaster):
    """Naive forecaster: repeats the last observed value.

    Formula: y_hat[t+h] = y[t] for all h
    """

    method = ForecastMethod.NAIVE

    def _forecast(self, values: FloatArray, horizon: int) -> FloatArray:
        if len(values) == 0:
            return np.zeros(horizon, dtype=np.float64)
        return np.full(horizon, values[-1], dtype=np.float64)


class MovingAverageForecaster(BaseForecaster):
    """Moving average forecaster: repeats the mean of the last N observations.

    Formula: y_hat[t+h] = mean(y[t-w+1:t+1]), w = min(window, n)

    When no window is configured, min(5, n // 3) is used.

    Attributes:
        window: Averaging window (at least 1; None for the length default).
    """

    method = ForecastMethod.MOVING_AVERAGE
    param_names = ("window",)

    def __init__(self, window: int | None = None) -> None:
        super().__init__()
        self.window = window

    @property
    def window(self) -> int | None:
        return self._window

    @window.setter
    def window(self, value: int | None) -> None:
        if value is not None and value < 1:
            raise ValueError(f"Moving-average window must be >= 1, got {value}")
        self._window = value

    def _effective_window(self, n: int) -> int:
        if self.window is not None:
            return self.window
        return max(1, min(5, n // 3))

    def _forecast(self, values: FloatArray, horizon: int) -> FloatArray:
        n = len(values)
        if n == 0:
            return np.zeros(horizon, dtype=np.float64)
        window = min(self._effective_window(n), n)
        return np.full(horizon, float(np.mean(values[n - window :])), dtype=np.float64)


class LinearRegressionForecaster(BaseForecaster):
    """Linear trend extrapolation fitted by ordinary least squares.

    Formula: y_hat[n-1+h] = intercept + slope * (n - 1 + h)

    Fewer than two points cannot define a line; the first value is repeated.
    """

    method = ForecastMethod.LINEAR_REGRESSION

    def _forecast(self, values: FloatArray, horizon: int) -> FloatArray:
        n = len(values)
        if n < 2:
            return np.full(horizon, values[0] if n else 0.0, dtype=np.float64)
        slope, intercept = linear_regression(values)
        steps = np.arange(n, n + horizon, dtype=np.float64)
        return intercept + slope * steps

    @staticmethod
    def coefficients(values: FloatArray | list[float]) -> tuple[float, float]:
        """Fitted (slope, intercept) for reporting."""
        return linear_regression(np.asarray(values, dtype=np.float64))


class ExponentialSmoothingForecaster(BaseForecaster):
    """Single exponential smoothing with a flat forecast.

    Formula: level[t] = alpha * y[t] + (1 - alpha) * level[t-1], level[0] = y[0]

    CRITICAL: Every horizon step repeats the final level. The method tracks no
    trend; use double exponential smoothing for trended series.

    Attributes:
        alpha: Smoothing factor in (0, 1].
    """

    method = ForecastMethod.EXPONENTIAL_SMOOTHING
    param_names = ("alpha",)

    def __init__(self, alpha: float = DEFAULT_ALPHA) -> None:
        super().__init__()
        self.alpha = alpha

    def _forecast(self, values: FloatArray, horizon: int) -> FloatArray:
        if len(values) == 0:
            return np.zeros(horizon, dtype=np.float64)
        level = float(values[0])
        for x in values[1:].tolist():
            level = self.alpha * x + (1 - self.alpha) * level
        return np.full(horizon, level, dtype=np.float64)


class DoubleExponentialSmoothingForecaster(BaseForecaster):
    """Holt's linear method: smoothed level plus smoothed trend.

    Formula: y_hat[t+h] = level[t] + h * trend[t]

    Attributes:
        alpha: Level smoothing factor.
        beta: Trend smoothing factor.
    """

    method = ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING
    param_names = ("alpha", "beta")

    def __init__(self, alpha: float = DEFAULT_ALPHA, beta: float = DEFAULT_BETA) -> None:
        super().__init__()
        self.alpha = alpha
        self.beta = beta

    def _forecast(self, values: FloatArray, horizon: int) -> FloatArray:
        n = len(values)
        if n < 2:
            return np.full(horizon, values[0] if n else 0.0, dtype=np.float64)
        level, trend = holt_smooth(values.tolist(), self.alpha, self.beta)
        return level + trend * np.arange(1, horizon + 1, dtype=np.float64)


class SeasonalNaiveForecaster(BaseForecaster):
    """Seasonal naive forecaster: reads the forecast off the last season.

    Formula: y_hat[n+i] = y[n - m + ((n + i) mod m)] for i = 0..h-1

    Series shorter than one season fall back to repeating the last value.

    Attributes:
        seasonal_period: Season length m.
    """

    method = ForecastMethod.SEASONAL_NAIVE
    param_names = ("seasonal_period",)

    def __init__(self, seasonal_period: int = DEFAULT_SEASONAL_PERIOD) -> None:
        super().__init__()
        self.seasonal_period = seasonal_period

    def _forecast(self, values: FloatArray, horizon: int) -> FloatArray:
        n = len(values)
        period = self.seasonal_period
        if n == 0:
            return np.zeros(horizon, dtype=np.float64)
        if n < period:
            return np.full(horizon, values[-1], dtype=np.float64)
        indices = n - period + (np.arange(n, n + horizon) % period)
        return values[indices].astype(np.float64)

    def accuracy(self, values: FloatArray | list[float]) -> float | None:
        """Holdout MAPE; None unless the series spans two full seasons."""
        if len(values) < 2 * self.seasonal_period:
            return None
        return super().accuracy(values)

    def one_step(self, prefix: FloatArray | list[float]) -> float:
        """Value one season back, or the last value for a short prefix."""
        y = np.asarray(prefix, dtype=np.float64)
        if len(y) >= self.seasonal_period:
            return float(y[-self.seasonal_period])
        return float(y[-1])


class HoltWintersForecaster(BaseForecaster):
    """Multiplicative Holt-Winters (triple exponential smoothing).

    Initialization uses the first two seasons only:
        level = mean(y[0:m])
        trend = sum(y[m+i] - y[i] for i < m) / m / m
        season[i] = (y[i] + y[i+m]) / 2 / level, renormalized to mean 1

    Update for t = m..n-1 with k = t mod m:
        level = alpha * y[t] / season[k] + (1 - alpha) * (level + trend)
        trend = beta * (level - old_level) + (1 - beta) * old_trend
        season[k] = gamma * y[t] / level + (1 - gamma) * season[k]

    Forecast: y_hat[n-1+h] = (level + h * trend) * season[(n + h - 1) mod m]

    CRITICAL: Requires n >= 2m; shorter series fall back to Holt's linear
    method with the same alpha and beta.

    Attributes:
        alpha: Level smoothing factor.
        beta: Trend smoothing factor.
        gamma: Seasonal smoothing factor.
        seasonal_period: Season length m.
    """

    method = ForecastMethod.HOLT_WINTERS
    param_names = ("alpha", "beta", "gamma", "seasonal_period")

    def __init__(
        self,
        alpha: float = DEFAULT_ALPHA,
        beta: float = DEFAULT_BETA,
        gamma: float = DEFAULT_GAMMA,
        seasonal_period: int = DEFAULT_SEASONAL_PERIOD,
    ) -> None:
        super().__init__()
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self.seasonal_period = seasonal_period

    def _fallback(self) -> DoubleExponentialSmoothingForecaster:
        return DoubleExponentialSmoothingForecaster(alpha=self.alpha, beta=self.beta)

    def _forecast(self, values: FloatArray, horizon: int) -> FloatArray:
        n = len(values)
        m = self.seasonal_period
        if n < 2 * m:
            return self._fallback().forecast(values, horizon)

        y = values.tolist()
        level = sum(y[:m]) / m
        trend = sum((y[m + i] - y[i]) / m for i in range(m)) / m

        seasonals = [(y[i] + y[i + m]) / 2 / level for i in range(m)]
        seasonal_sum = sum(seasonals)
        seasonals = [m * s / seasonal_sum for s in seasonals]

        for t in range(m, n):
            old_level, old_trend = level, trend
            k = t % m
            level = self.alpha * (y[t] / seasonals[k]) + (1 - self.alpha) * (old_level + old_trend)
            trend = self.beta * (level - old_level) + (1 - self.beta) * old_trend
            seasonals[k] = self.gamma * (y[t] / level) + (1 - self.gamma) * seasonals[k]

        return np.array(
            [(level + h * trend) * seasonals[(n + h - 1) % m] for h in range(1, horizon + 1)],
            dtype=np.float64,
        )

    def accuracy(self, values: FloatArray | list[float]) -> float | None:
        """Holdout MAPE; Holt's accuracy when fewer than two seasons exist."""
        if len(values) < 2 * self.seasonal_period:
            return self._fallback().accuracy(values)
        return super().accuracy(values)


def model_factory(method: ForecastMethod | str, **params: Any) -> BaseForecaster:  # noqa: ANN401
    """Create a forecaster for a method.

    Args:
        method: Forecast method (enum member or its string value).
        **params: Method parameters. None values keep the defaults.

    Returns:
        Configured forecaster.

    Raises:
        ValueError: If the method is unknown or a parameter is not accepted.
    """
    forecaster: BaseForecaster
    match ForecastMethod(method):
        case ForecastMethod.NAIVE:
            forecaster = NaiveForecaster()
        case ForecastMethod.MOVING_AVERAGE:
            forecaster = MovingAverageForecaster()
        case ForecastMethod.LINEAR_REGRESSION:
            forecaster = LinearRegressionForecaster()
        case ForecastMethod.EXPONENTIAL_SMOOTHING:
            forecaster = ExponentialSmoothingForecaster()
        case ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING:
            forecaster = DoubleExponentialSmoothingForecaster()
        case ForecastMethod.SEASONAL_NAIVE:
            forecaster = SeasonalNaiveForecaster()
        case ForecastMethod.HOLT_WINTERS:
            forecaster = HoltWintersForecaster()
    return forecaster.set_params(**params)
