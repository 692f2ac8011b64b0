"""Pydantic schemas and enums for forecasting inputs and results.

Option models are immutable (frozen=True) and reject unknown fields so that a
misspelled parameter fails loudly instead of silently using a default.
Result models serialize to the JSON contract consumed by the HTTP layer via
``model_dump(mode="json")``.
"""

from __future__ import annotations

import hashlib
import re
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# =============================================================================
# Enums
# =============================================================================


class Frequency(str, Enum):
    """Sampling frequency of a series."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    IRREGULAR = "irregular"

    @classmethod
    def parse(cls, value: Frequency | str | None) -> Frequency:
        """Parse a frequency string, mapping unknown values to IRREGULAR.

        Args:
            value: Frequency member, string or None.

        Returns:
            Matching Frequency member.
        """
        if isinstance(value, Frequency):
            return value
        if value is None:
            return cls.IRREGULAR
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.IRREGULAR


def _camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class ForecastMethod(str, Enum):
    """Closed set of forecasting algorithms.

    Values are snake_case. The camelCase spellings used by older clients
    (``movingAverage``, ``holtWinters``) are accepted on parse.
    """

    NAIVE = "naive"
    MOVING_AVERAGE = "moving_average"
    LINEAR_REGRESSION = "linear_regression"
    EXPONENTIAL_SMOOTHING = "exponential_smoothing"
    DOUBLE_EXPONENTIAL_SMOOTHING = "double_exponential_smoothing"
    SEASONAL_NAIVE = "seasonal_naive"
    HOLT_WINTERS = "holt_winters"

    @classmethod
    def _missing_(cls, value: object) -> ForecastMethod | None:
        if isinstance(value, str):
            snake = _camel_to_snake(value.strip())
            for member in cls:
                if member.value == snake:
                    return member
        return None

    @property
    def display_name(self) -> str:
        """Human-readable method name."""
        return _METHOD_INFO[self][0]

    @property
    def description(self) -> str:
        """One-line description of the algorithm."""
        return _METHOD_INFO[self][1]

    @property
    def is_seasonal(self) -> bool:
        """Whether the method needs at least two full seasons of data."""
        return self in (ForecastMethod.SEASONAL_NAIVE, ForecastMethod.HOLT_WINTERS)


_METHOD_INFO: dict[ForecastMethod, tuple[str, str]] = {
    ForecastMethod.NAIVE: (
        "Naive Forecast",
        "Uses the last observed value for all future forecasts",
    ),
    ForecastMethod.MOVING_AVERAGE: (
        "Moving Average",
        "Uses the average of the last n values",
    ),
    ForecastMethod.LINEAR_REGRESSION: (
        "Linear Regression",
        "Forecasts based on linear trend in the data",
    ),
    ForecastMethod.EXPONENTIAL_SMOOTHING: (
        "Exponential Smoothing",
        "Weighted average with exponentially decreasing weights",
    ),
    ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING: (
        "Double Exponential Smoothing",
        "Handles both level and trend components",
    ),
    ForecastMethod.SEASONAL_NAIVE: (
        "Seasonal Naive",
        "Uses values from the same season in the previous cycle",
    ),
    ForecastMethod.HOLT_WINTERS: (
        "Holt-Winters",
        "Triple exponential smoothing accounting for trend and seasonality",
    ),
}

ALL_METHODS: tuple[ForecastMethod, ...] = tuple(ForecastMethod)


# =============================================================================
# Input Schemas
# =============================================================================


class TimeSeries(BaseModel):
    """Chronologically ordered observations.

    Attributes:
        time_values: ISO-like timestamps, one per observation.
        values: Observed values.
        frequency: Sampling frequency (unknown strings parse to irregular).
    """

    model_config = ConfigDict(frozen=True)

    time_values: list[str] = Field(default_factory=list)
    values: list[float] = Field(default_factory=list)
    frequency: Frequency = Frequency.IRREGULAR

    @field_validator("frequency", mode="before")
    @classmethod
    def parse_frequency(cls, v: object) -> Frequency:
        """Map unknown frequency strings to irregular."""
        return Frequency.parse(v if isinstance(v, (Frequency, str)) else None)

    @model_validator(mode="after")
    def validate_lengths(self) -> TimeSeries:
        """Ensure timestamps and values are aligned."""
        if len(self.time_values) != len(self.values):
            raise ValueError(
                f"time_values and values must have same length: "
                f"{len(self.time_values)} vs {len(self.values)}"
            )
        return self

    def __len__(self) -> int:
        return len(self.values)

    def concat(self, other: TimeSeries) -> TimeSeries:
        """Append another series after this one (keeps this frequency)."""
        return TimeSeries(
            time_values=[*self.time_values, *other.time_values],
            values=[*self.values, *other.values],
            frequency=self.frequency,
        )

    def slice(self, start: int, stop: int | None = None) -> TimeSeries:
        """Sub-series of observations start..stop-1."""
        return TimeSeries(
            time_values=self.time_values[start:stop],
            values=self.values[start:stop],
            frequency=self.frequency,
        )


class ForecastOptions(BaseModel):
    """Options for a forecast run.

    Unset smoothing parameters fall back to the configured defaults
    (alpha=0.3, beta=0.1, gamma=0.1). ``method=None`` runs every method.

    Attributes:
        method: Restrict the run to a single method.
        horizon: Number of future periods (frequency default when unset).
        alpha: Level smoothing factor.
        beta: Trend smoothing factor in [0, 1].
        gamma: Seasonal smoothing factor in [0, 1].
        seasonal_period: Explicit season length (detected when unset).
        window: Moving-average window (min(5, n // 3) when unset).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: ForecastMethod | None = None
    horizon: int | None = Field(default=None, ge=1, le=1000)
    alpha: float | None = Field(default=None, gt=0.0, le=1.0)
    beta: float | None = Field(default=None, ge=0.0, le=1.0)
    gamma: float | None = Field(default=None, ge=0.0, le=1.0)
    seasonal_period: int | None = Field(default=None, ge=1)
    window: int | None = Field(default=None, ge=1)

    def config_hash(self) -> str:
        """Generate deterministic hash of the options.

        Returns:
            16-character hex string hash of options JSON.
        """
        return hashlib.sha256(self.model_dump_json().encode()).hexdigest()[:16]


# =============================================================================
# Result Schemas
# =============================================================================


class ConfidenceIntervals(BaseModel):
    """Prediction interval around a forecast.

    Attributes:
        level: Confidence level in percent (e.g. 95.0).
        lower: Lower bound per horizon step.
        upper: Upper bound per horizon step.
        rmse: Walk-forward one-step RMSE the margin is built from.
    """

    level: float
    lower: list[float]
    upper: list[float]
    rmse: float


class MethodForecast(BaseModel):
    """Forecast produced by a single method.

    Attributes:
        parameters: Method parameters the forecast was made with.
        coefficients: Fitted values reported for inspection (e.g. slope).
    """

    name: str
    description: str
    values: list[float]
    accuracy: float | None = None
    parameters: dict[str, float | int] = Field(default_factory=dict)
    coefficients: dict[str, float] = Field(default_factory=dict)
    confidence_intervals: ConfidenceIntervals | None = None


class ForecastResult(BaseModel):
    """Multi-method forecast with the best method selected by accuracy.

    Attributes:
        horizon_periods: Number of forecast steps.
        horizon_dates: Future timestamps (YYYY-MM-DD), one per step.
        methods: Per-method forecasts keyed by method.
        best_method: Method with the lowest non-null accuracy (MAPE).
        seasonal_period: Season length used by the seasonal methods.
        reason: Why no forecast was produced, when applicable.
    """

    horizon_periods: int
    horizon_dates: list[str] = Field(default_factory=list)
    methods: dict[ForecastMethod, MethodForecast] = Field(default_factory=dict)
    best_method: ForecastMethod | None = None
    seasonal_period: int | None = None
    reason: str | None = None

    @property
    def best(self) -> MethodForecast | None:
        """Forecast of the best method, if any."""
        if self.best_method is None:
            return None
        return self.methods.get(self.best_method)
