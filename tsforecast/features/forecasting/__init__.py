"""Forecasting module: classical algorithms and the multi-method orchestrator.

Exports:
    Models:
        - BaseForecaster: Abstract base class for all forecasters
        - NaiveForecaster, MovingAverageForecaster, LinearRegressionForecaster
        - ExponentialSmoothingForecaster, DoubleExponentialSmoothingForecaster
        - SeasonalNaiveForecaster, HoltWintersForecaster
        - model_factory: Create forecaster for a ForecastMethod

    Schemas:
        - ForecastMethod, Frequency, TimeSeries, ForecastOptions
        - ForecastResult, MethodForecast, ConfidenceIntervals

    Walk-forward:
        - WalkForward, OneStepForecast, prediction_errors

    Service:
        - ForecastingService: Runs every method and attaches intervals
"""

from tsforecast.features.forecasting.models import (
    BaseForecaster,
    DoubleExponentialSmoothingForecaster,
    ExponentialSmoothingForecaster,
    HoltWintersForecaster,
    LinearRegressionForecaster,
    MovingAverageForecaster,
    NaiveForecaster,
    SeasonalNaiveForecaster,
    model_factory,
)
from tsforecast.features.forecasting.schemas import (
    ALL_METHODS,
    ConfidenceIntervals,
    ForecastMethod,
    ForecastOptions,
    ForecastResult,
    Frequency,
    MethodForecast,
    TimeSeries,
)
from tsforecast.features.forecasting.seasonality import autocorrelation, detect_seasonal_period
from tsforecast.features.forecasting.service import ForecastingService, critical_value
from tsforecast.features.forecasting.timeutils import (
    default_horizon,
    detect_frequency,
    generate_future_dates,
)
from tsforecast.features.forecasting.walkforward import (
    OneStepForecast,
    WalkForward,
    prediction_errors,
)

__all__ = [
    "ALL_METHODS",
    "BaseForecaster",
    "ConfidenceIntervals",
    "DoubleExponentialSmoothingForecaster",
    "ExponentialSmoothingForecaster",
    "ForecastMethod",
    "ForecastOptions",
    "ForecastResult",
    "ForecastingService",
    "Frequency",
    "HoltWintersForecaster",
    "LinearRegressionForecaster",
    "MethodForecast",
    "MovingAverageForecaster",
    "NaiveForecaster",
    "OneStepForecast",
    "SeasonalNaiveForecaster",
    "TimeSeries",
    "WalkForward",
    "autocorrelation",
    "critical_value",
    "default_horizon",
    "detect_frequency",
    "detect_seasonal_period",
    "generate_future_dates",
    "model_factory",
    "prediction_errors",
]
