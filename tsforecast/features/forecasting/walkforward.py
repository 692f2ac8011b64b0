"""Walk-forward one-step-ahead forecasts.

CRITICAL: Each forecast uses only the observations strictly before its index.

Example (n=9, default start = floor(2n/3) = 6):
    step 0: fit y[0:6] -> forecast y[6]
    step 1: fit y[0:7] -> forecast y[7]
    step 2: fit y[0:8] -> forecast y[8]
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from tsforecast.core.logging import get_logger
from tsforecast.features.forecasting.models import BaseForecaster, model_factory
from tsforecast.features.forecasting.schemas import ForecastMethod

logger = get_logger(__name__)

MIN_WALK_FORWARD_POINTS = 3


@dataclass(frozen=True)
class OneStepForecast:
    """A single walk-forward step.

    Attributes:
        index: Position of the forecast value in the series.
        forecast: Forecast made from values[:index].
        actual: Observed value at index.
        error: actual - forecast.
    """

    index: int
    forecast: float
    actual: float

    @property
    def error(self) -> float:
        return self.actual - self.forecast


class WalkForward:
    """Finite, restartable sequence of one-step-ahead forecasts.

    Iterating twice yields the same steps. ``from_index`` returns a new
    sequence restarted from a different prefix length.

    Attributes:
        forecaster: Algorithm producing each one-step forecast.
        start: First forecast index (defaults to floor(2n/3)).
    """

    def __init__(
        self,
        values: Sequence[float] | np.ndarray,
        method: ForecastMethod | str,
        params: dict[str, Any] | None = None,
        start: int | None = None,
    ) -> None:
        """Initialize the walk-forward sequence.

        Args:
            values: Observed values.
            method: Forecast method used at each step.
            params: Method parameters.
            start: First forecast index. Must be at least 1.

        Raises:
            ValueError: If start is outside 1..n.
        """
        self._values = np.asarray(values, dtype=np.float64)
        self.params = dict(params or {})
        self.forecaster: BaseForecaster = model_factory(method, **self.params)
        n = len(self._values)
        self.start = (n * 2) // 3 if start is None else start
        if n and not 1 <= self.start <= n:
            raise ValueError(f"start must be in [1, {n}], got {self.start}")

    def __iter__(self) -> Iterator[OneStepForecast]:
        for index in range(self.start, len(self._values)):
            prefix = self._values[:index]
            try:
                forecast = self.forecaster.one_step(prefix)
            except (ArithmeticError, ValueError, IndexError):
                logger.debug(
                    "forecasting.walk_forward_step_fallback",
                    method=self.forecaster.method.value,
                    index=index,
                )
                forecast = float(prefix[-1])
            yield OneStepForecast(index=index, forecast=forecast, actual=float(self._values[index]))

    def __len__(self) -> int:
        return max(0, len(self._values) - self.start)

    def from_index(self, start: int) -> WalkForward:
        """Restart the sequence from a different prefix length."""
        return WalkForward(self._values, self.forecaster.method, self.params, start=start)

    def errors(self) -> list[float]:
        """Forecast errors (actual - forecast) for every step."""
        return [step.error for step in self]


def prediction_errors(
    values: Sequence[float] | np.ndarray,
    method: ForecastMethod | str,
    params: dict[str, Any] | None = None,
) -> list[float]:
    """One-step errors over the last third of a series.

    Args:
        values: Observed values.
        method: Forecast method.
        params: Method parameters.

    Returns:
        List of errors; empty when fewer than 3 points.
    """
    if len(values) < MIN_WALK_FORWARD_POINTS:
        return []
    return WalkForward(values, method, params).errors()
