"""Seasonal period detection by autocorrelation."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from tsforecast.core.logging import get_logger
from tsforecast.features.forecasting.schemas import Frequency

logger = get_logger(__name__)

CANONICAL_PERIODS: dict[Frequency, int] = {
    Frequency.DAILY: 7,
    Frequency.WEEKLY: 4,
    Frequency.MONTHLY: 12,
    Frequency.QUARTERLY: 4,
}

MIN_POINTS_FOR_ACF = 24
MAX_ACF_LAG = 24
ACF_THRESHOLD = 0.3
FALLBACK_PERIOD = 7


def autocorrelation(values: Sequence[float] | np.ndarray, lag: int) -> float:
    """Autocorrelation of a series at a given lag.

    Formula: sum((x[i] - mu) * (x[i+k] - mu)) / sum((x[i] - mu)^2)

    Args:
        values: Observed values.
        lag: Lag k.

    Returns:
        Correlation coefficient; 0 when the series is not longer than the lag
        or has zero variance.
    """
    y = np.asarray(values, dtype=np.float64)
    n = len(y)
    if n <= lag:
        return 0.0
    centered = y - y.mean()
    denominator = float(np.sum(centered**2))
    if denominator == 0:
        return 0.0
    numerator = float(np.sum(centered[: n - lag] * centered[lag:]))
    return numerator / denominator


def detect_seasonal_period(
    values: Sequence[float] | np.ndarray,
    frequency: Frequency | str | None = None,
) -> int:
    """Detect the season length of a series.

    Known frequencies map to a canonical period (daily 7, weekly 4, monthly
    12, quarterly 4) regardless of the data. Otherwise, with at least 24
    points, the lag in 2..min(24, n // 3) with the highest autocorrelation is
    returned if that correlation exceeds 0.3.

    Args:
        values: Observed values.
        frequency: Series frequency.

    Returns:
        Seasonal period, falling back to min(7, n // 3).
    """
    freq = Frequency.parse(frequency)
    if freq in CANONICAL_PERIODS:
        return CANONICAL_PERIODS[freq]

    n = len(values)
    if n >= MIN_POINTS_FOR_ACF:
        max_lag = min(MAX_ACF_LAG, n // 3)
        correlations = {lag: autocorrelation(values, lag) for lag in range(2, max_lag + 1)}
        if correlations:
            best_lag = max(correlations, key=lambda lag: correlations[lag])
            if correlations[best_lag] > ACF_THRESHOLD:
                logger.debug(
                    "forecasting.seasonality_detected",
                    period=best_lag,
                    autocorrelation=round(correlations[best_lag], 4),
                )
                return best_lag

    return min(FALLBACK_PERIOD, n // 3)
