"""Feature engineering service for univariate series.

Feature groups:
- time: calendar attributes of each timestamp
- lag: lagged values, trailing moving averages, differences
- statistical: rolling windows, seasonal comparisons, expanding statistics
- transform: log, root, scaling and power transforms of the values
- external: optional outside sources (see external.py)

CRITICAL: Every feature is aligned 1:1 with the input series. Entries without
enough history are None, never dropped.
"""

from __future__ import annotations

import math
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import httpx
import numpy as np
import pandas as pd

from tsforecast.core.config import get_settings
from tsforecast.core.logging import get_logger
from tsforecast.features.featuresets.external import fetch_external_features
from tsforecast.features.featuresets.schemas import Feature, FeatureConfig, FeatureType
from tsforecast.features.forecasting.schemas import Frequency
from tsforecast.features.forecasting.seasonality import detect_seasonal_period

logger = get_logger(__name__)

MIN_STATISTICAL_POINTS = 5
MOVING_AVERAGE_WINDOWS = (3, 5, 7)
DIFF_LAGS = (1, 7, 30)
ROLLING_WINDOWS = (5, 10)
POWERS = (0.5, 2, 3)
BOX_COX_LAMBDAS = (0, 0.5, 2)

# (month, day): New Year, Independence Day, Christmas
CALENDAR_HOLIDAYS: frozenset[tuple[int, int]] = frozenset({(1, 1), (7, 4), (12, 25)})


def _optional(series: pd.Series | np.ndarray) -> list[float | None]:
    """Convert to a list with NaN replaced by None."""
    return [None if pd.isna(v) else float(v) for v in series]


def _suffix(number: float) -> str:
    """Render 0.5 as "0_5" and 2 as "2" for feature names."""
    return f"{number:g}".replace(".", "_")


def _pct_change(series: pd.Series, lag: int) -> pd.Series:
    """(x[i] - x[i-k]) / |x[i-k]|, 0 where the base is 0."""
    base = series.shift(lag)
    change = (series - base) / base.abs().where(base != 0)
    return change.where(base != 0, 0.0).where(base.notna())


# =============================================================================
# Time Features
# =============================================================================


def extract_time_features(
    time_values: Sequence[str],
    frequency: Frequency | str | None,
) -> list[Feature]:
    """Calendar features of each timestamp.

    Day of week counts from 0 = Sunday and month from 0 = January. Daily and
    weekly series add weekend and holiday flags, daily/weekly/monthly add a
    cyclical month encoding, daily adds a cyclical day-of-week encoding.

    Args:
        time_values: Observed timestamps.
        frequency: Series frequency.

    Returns:
        List of time features.
    """
    freq = Frequency.parse(frequency)
    dates = pd.DatetimeIndex(pd.to_datetime(pd.Series(list(time_values)), format="mixed"))
    day_of_week = (np.asarray(dates.dayofweek) + 1) % 7
    month = np.asarray(dates.month) - 1

    features = [
        Feature(
            name="day_of_week",
            type=FeatureType.CATEGORICAL,
            values=day_of_week.astype(float).tolist(),
            description="Day of week (0-6, 0 is Sunday)",
        ),
        Feature(
            name="day_of_month",
            values=np.asarray(dates.day, dtype=float).tolist(),
            description="Day of month (1-31)",
        ),
        Feature(
            name="month",
            type=FeatureType.CATEGORICAL,
            values=month.astype(float).tolist(),
            description="Month of year (0-11, 0 is January)",
        ),
        Feature(
            name="quarter",
            type=FeatureType.CATEGORICAL,
            values=np.asarray(dates.quarter, dtype=float).tolist(),
            description="Quarter of year (1-4)",
        ),
        Feature(
            name="year",
            values=np.asarray(dates.year, dtype=float).tolist(),
            description="Year",
        ),
    ]

    if freq in (Frequency.DAILY, Frequency.WEEKLY):
        features.append(
            Feature(
                name="is_weekend",
                type=FeatureType.BINARY,
                values=np.isin(day_of_week, (0, 6)).astype(float).tolist(),
                description="Is weekend (1) or weekday (0)",
            )
        )
        features.append(
            Feature(
                name="is_holiday",
                type=FeatureType.BINARY,
                values=[1.0 if (d.month, d.day) in CALENDAR_HOLIDAYS else 0.0 for d in dates],
                description="Is public holiday (1) or not (0)",
            )
        )

    if freq in (Frequency.DAILY, Frequency.WEEKLY, Frequency.MONTHLY):
        features.append(
            Feature(
                name="month_sin",
                values=np.sin(2 * np.pi * month / 12).tolist(),
                description="Sine transformation of month for cyclical pattern",
            )
        )
        features.append(
            Feature(
                name="month_cos",
                values=np.cos(2 * np.pi * month / 12).tolist(),
                description="Cosine transformation of month for cyclical pattern",
            )
        )

    if freq == Frequency.DAILY:
        features.append(
            Feature(
                name="day_of_week_sin",
                values=np.sin(2 * np.pi * day_of_week / 7).tolist(),
                description="Sine transformation of day of week for cyclical pattern",
            )
        )
        features.append(
            Feature(
                name="day_of_week_cos",
                values=np.cos(2 * np.pi * day_of_week / 7).tolist(),
                description="Cosine transformation of day of week for cyclical pattern",
            )
        )

    return features


# =============================================================================
# Lag Features
# =============================================================================


def generate_lag_features(values: Sequence[float], max_lag: int = 7) -> list[Feature]:
    """Lagged values, trailing moving averages and period-over-period changes.

    The effective max lag is min(max_lag, n // 3). Moving averages (3, 5, 7)
    and differences (1, 7, 30) are only produced up to that lag.

    Args:
        values: Observed values.
        max_lag: Largest lag requested.

    Returns:
        List of lag features.
    """
    series = pd.Series(list(values), dtype="float64")
    actual_max_lag = min(max_lag, len(series) // 3)
    features: list[Feature] = []

    for lag in range(1, actual_max_lag + 1):
        features.append(
            Feature(
                name=f"lag_{lag}",
                values=_optional(series.shift(lag)),
                description=f"Value lagged by {lag} periods",
            )
        )

    for window in (w for w in MOVING_AVERAGE_WINDOWS if w <= actual_max_lag):
        features.append(
            Feature(
                name=f"ma_{window}",
                values=_optional(series.rolling(window=window).mean()),
                description=f"Moving average with window size {window}",
            )
        )

    for lag in (k for k in DIFF_LAGS if k <= actual_max_lag):
        features.append(
            Feature(
                name=f"diff_{lag}",
                values=_optional(series.diff(lag)),
                description=f"Difference from value {lag} periods ago",
            )
        )
        features.append(
            Feature(
                name=f"pct_change_{lag}",
                values=_optional(_pct_change(series, lag)),
                description=f"Percentage change from value {lag} periods ago",
            )
        )

    return features


# =============================================================================
# Statistical Features
# =============================================================================


def generate_statistical_features(
    values: Sequence[float],
    frequency: Frequency | str | None,
) -> list[Feature]:
    """Rolling, seasonal and expanding statistics.

    Rolling windows are 5, 10 and the detected seasonal period, each kept
    only when shorter than half the series. Standard deviations are
    population (ddof=0).

    Args:
        values: Observed values.
        frequency: Series frequency (drives the seasonal period).

    Returns:
        List of statistical features; empty below 5 points.
    """
    n = len(values)
    if n < MIN_STATISTICAL_POINTS:
        return []

    series = pd.Series(list(values), dtype="float64")
    period = detect_seasonal_period(series.to_numpy(), frequency)
    windows = [w for w in dict.fromkeys((*ROLLING_WINDOWS, period)) if 0 < w < n / 2]
    features: list[Feature] = []

    for window in windows:
        rolling = series.rolling(window=window)
        features.extend(
            [
                Feature(
                    name=f"rolling_mean_{window}",
                    values=_optional(rolling.mean()),
                    description=f"Rolling mean with window size {window}",
                ),
                Feature(
                    name=f"rolling_std_{window}",
                    values=_optional(rolling.std(ddof=0)),
                    description=f"Rolling standard deviation with window size {window}",
                ),
                Feature(
                    name=f"rolling_min_{window}",
                    values=_optional(rolling.min()),
                    description=f"Rolling minimum with window size {window}",
                ),
                Feature(
                    name=f"rolling_max_{window}",
                    values=_optional(rolling.max()),
                    description=f"Rolling maximum with window size {window}",
                ),
            ]
        )

    if period > 1 and 2 * period <= n:
        features.extend(
            [
                Feature(
                    name=f"seasonal_lag_{period}",
                    values=_optional(series.shift(period)),
                    description=(
                        f"Value from same period in previous season (period: {period})"
                    ),
                ),
                Feature(
                    name=f"seasonal_diff_{period}",
                    values=_optional(series.diff(period)),
                    description=(
                        f"Difference from same period in previous season (period: {period})"
                    ),
                ),
                Feature(
                    name=f"seasonal_pct_change_{period}",
                    values=_optional(_pct_change(series, period)),
                    description=(
                        f"Percentage change from same period in previous season "
                        f"(period: {period})"
                    ),
                ),
            ]
        )

    expanding_std = _optional(series.expanding().std(ddof=0))
    expanding_std[0] = None
    features.append(
        Feature(
            name="expanding_mean",
            values=_optional(series.expanding().mean()),
            description="Expanding window mean (cumulative mean)",
        )
    )
    features.append(
        Feature(
            name="expanding_std",
            values=expanding_std,
            description="Expanding window standard deviation (cumulative std)",
        )
    )

    return features


# =============================================================================
# Transform Features
# =============================================================================


def _power(x: float, power: float) -> float | None:
    odd_integer = float(power).is_integer() and int(power) % 2 == 1
    if x < 0:
        return -(abs(x) ** power) if odd_integer else None
    return x**power


def _box_cox(x: float, lam: float) -> float | None:
    if not x > 0:
        return None
    if lam == 0:
        return math.log(x)
    return (x**lam - 1) / lam


def generate_transform_features(values: Sequence[float]) -> list[Feature]:
    """Mathematical transforms, defined only where the input domain permits.

    log and Box-Cox need positive input, sqrt and the 0.5/2 powers need
    non-negative input; the cube is sign-preserving. Min-max scaling and
    z-score are None throughout for constant series.

    Args:
        values: Observed values (NaN treated as missing).

    Returns:
        List of transform features.
    """
    y = np.asarray(values, dtype=np.float64)
    present = y[~np.isnan(y)]
    features: list[Feature] = []

    features.append(
        Feature(
            name="log_transform",
            values=[math.log(x) if x > 0 else None for x in y],
            description="Natural logarithm transformation (log(x))",
        )
    )
    features.append(
        Feature(
            name="sqrt_transform",
            values=[math.sqrt(x) if x >= 0 else None for x in y],
            description="Square root transformation (sqrt(x))",
        )
    )

    normalized: list[float | None] = [None] * len(y)
    z_scores: list[float | None] = [None] * len(y)
    if len(present):
        low, high = float(present.min()), float(present.max())
        mean, std = float(present.mean()), float(present.std())
        if high > low:
            normalized = [None if math.isnan(x) else (x - low) / (high - low) for x in y]
        if std > 0:
            z_scores = [None if math.isnan(x) else (x - mean) / std for x in y]

    features.append(
        Feature(
            name="normalized_value",
            values=normalized,
            description="Min-max normalized value (scaled to 0-1 range)",
        )
    )
    features.append(
        Feature(
            name="z_score",
            values=z_scores,
            description="Z-score standardization ((x - mean) / std)",
        )
    )

    for power in POWERS:
        features.append(
            Feature(
                name=f"power_{_suffix(power)}",
                values=[None if math.isnan(x) else _power(float(x), power) for x in y],
                description=f"Power transformation (x^{power:g})",
            )
        )

    for lam in BOX_COX_LAMBDAS:
        features.append(
            Feature(
                name=f"box_cox_{_suffix(lam)}",
                values=[_box_cox(float(x), lam) for x in y],
                description=f"Box-Cox-like transformation with lambda={lam:g}",
            )
        )

    return features


# =============================================================================
# Service
# =============================================================================


@dataclass
class FeatureComputationResult:
    """Result of feature computation.

    Attributes:
        features: Generated features, aligned with the input series.
        config_hash: Hash of the configuration used.
        stats: Statistics about the computation.
    """

    features: list[Feature]
    config_hash: str
    stats: dict[str, Any] = field(default_factory=lambda: {})

    @property
    def feature_names(self) -> list[str]:
        return [f.name for f in self.features]


class FeatureEngineeringService:
    """Generates every enabled feature group for a series.

    Example:
        >>> service = FeatureEngineeringService(FeatureConfig(max_lag=7))
        >>> features = service.generate_features(dates, values, "daily")
    """

    def __init__(
        self,
        config: FeatureConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialize service with configuration.

        Args:
            config: Feature configuration (all derived groups enabled when None).
            http_client: HTTP client for the custom API source.
        """
        self.config = config or FeatureConfig()
        self.max_lag = self.config.max_lag or get_settings().feature_default_max_lag
        self.http_client = http_client

    def compute_features(
        self,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
    ) -> FeatureComputationResult:
        """Compute all configured features.

        Args:
            time_values: Observed timestamps.
            values: Observed values.
            frequency: Series frequency.

        Returns:
            FeatureComputationResult with features and null counts.
        """
        start_time = time.perf_counter()
        freq = Frequency.parse(frequency)
        logger.info(
            "featuresets.compute_started",
            config_hash=self.config.config_hash(),
            n_points=len(values),
            frequency=freq.value,
        )

        features: list[Feature] = []
        if self.config.include_time and len(time_values) > 0:
            features.extend(extract_time_features(time_values, freq))
        if self.config.include_lag:
            features.extend(generate_lag_features(values, self.max_lag))
        if self.config.include_statistical:
            features.extend(generate_statistical_features(values, freq))
        if self.config.include_transform and len(values) > 0:
            features.extend(generate_transform_features(values))
        if self.config.external is not None:
            taken = {f.name for f in features}
            for feature in fetch_external_features(
                time_values, freq.value, self.config.external, client=self.http_client
            ):
                # Names stay unique; the internal feature keeps the bare name.
                if feature.name in taken:
                    logger.debug("featuresets.external_renamed", feature=feature.name)
                    feature = feature.model_copy(update={"name": f"external_{feature.name}"})
                taken.add(feature.name)
                features.append(feature)

        duration_ms = (time.perf_counter() - start_time) * 1000
        stats: dict[str, Any] = {
            "feature_count": len(features),
            "null_counts": {f.name: sum(v is None for v in f.values) for f in features},
            "duration_ms": round(duration_ms, 2),
        }

        logger.info(
            "featuresets.compute_completed",
            config_hash=self.config.config_hash(),
            feature_count=len(features),
            duration_ms=stats["duration_ms"],
        )

        return FeatureComputationResult(
            features=features,
            config_hash=self.config.config_hash(),
            stats=stats,
        )

    def generate_features(
        self,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
    ) -> list[Feature]:
        """Generate features (time + lag + statistical + transform + external)."""
        return self.compute_features(time_values, values, frequency).features
