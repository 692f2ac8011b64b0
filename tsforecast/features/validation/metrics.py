"""Metrics calculator for forecast evaluation.

Supported Metrics:
- MAPE: Mean Absolute Percentage Error (percent, non-zero actuals only)
- RMSE: Root Mean Square Error
- MAE: Mean Absolute Error
- R2: Coefficient of determination
- MASE: Mean Absolute Scaled Error (against one-step naive differencing)
- SMAPE: Symmetric Mean Absolute Percentage Error (percent)
- Bias: Mean signed error (actual - forecast, positive = under-forecast)

CRITICAL: Pairs with a missing (None/NaN) actual or forecast are ignored.
Every metric returns None when no valid pair remains.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np

from tsforecast.features.validation.schemas import ErrorMetrics, ForecastMetrics

FloatArray = np.ndarray[Any, np.dtype[np.floating[Any]]]
Values = Sequence[float | None] | FloatArray


def _as_array(values: Values) -> FloatArray:
    return np.array([np.nan if v is None else v for v in values], dtype=np.float64)


def _valid_pairs(actuals: Values, forecasts: Values) -> tuple[FloatArray, FloatArray]:
    """Aligned arrays of the pairs where both values are present.

    Raises:
        ValueError: If the inputs have different lengths.
    """
    if len(actuals) != len(forecasts):
        raise ValueError(f"Length mismatch: actuals={len(actuals)}, forecasts={len(forecasts)}")
    a = _as_array(actuals)
    f = _as_array(forecasts)
    mask = ~np.isnan(a) & ~np.isnan(f)
    return a[mask], f[mask]


class MetricsCalculator:
    """Calculate forecasting accuracy metrics.

    All methods are static and raise ValueError on a length mismatch,
    except MASE which returns None.
    """

    @staticmethod
    def mape(actuals: Values, forecasts: Values) -> float | None:
        """Mean Absolute Percentage Error.

        Formula: 100 * mean(|A - F| / |A|) over pairs with A != 0
        """
        a, f = _valid_pairs(actuals, forecasts)
        mask = a != 0
        if not np.any(mask):
            return None
        return float(np.mean(np.abs((a[mask] - f[mask]) / a[mask])) * 100.0)

    @staticmethod
    def rmse(actuals: Values, forecasts: Values) -> float | None:
        """Root Mean Square Error.

        Formula: sqrt(mean((A - F)^2))
        """
        a, f = _valid_pairs(actuals, forecasts)
        if len(a) == 0:
            return None
        return float(np.sqrt(np.mean((a - f) ** 2)))

    @staticmethod
    def mae(actuals: Values, forecasts: Values) -> float | None:
        """Mean Absolute Error.

        Formula: mean(|A - F|)
        """
        a, f = _valid_pairs(actuals, forecasts)
        if len(a) == 0:
            return None
        return float(np.mean(np.abs(a - f)))

    @staticmethod
    def r2(actuals: Values, forecasts: Values) -> float | None:
        """Coefficient of determination.

        Formula: 1 - SS_res / SS_tot

        Returns:
            R2, or None when the actuals have zero variance.
        """
        a, f = _valid_pairs(actuals, forecasts)
        if len(a) == 0:
            return None
        total_ss = float(np.sum((a - a.mean()) ** 2))
        if total_ss == 0:
            return None
        residual_ss = float(np.sum((a - f) ** 2))
        return 1.0 - residual_ss / total_ss

    @staticmethod
    def mase(actuals: Values, forecasts: Values) -> float | None:
        """Mean Absolute Scaled Error.

        Formula: MAE / mean(|A[i] - A[i-1]|)

        Returns:
            MASE, or None for mismatched or shorter-than-2 inputs and when the
            naive differencing error is 0.
        """
        if len(actuals) != len(forecasts) or len(actuals) < 2:
            return None
        mae = MetricsCalculator.mae(actuals, forecasts)
        if mae is None:
            return None
        a = _as_array(actuals)
        steps = np.abs(np.diff(a))
        steps = steps[~np.isnan(steps)]
        if len(steps) == 0:
            return None
        naive_mae = float(np.mean(steps))
        if naive_mae == 0:
            return None
        return mae / naive_mae

    @staticmethod
    def smape(actuals: Values, forecasts: Values) -> float | None:
        """Symmetric Mean Absolute Percentage Error.

        Formula: 100 * mean(|A - F| / ((|A| + |F|) / 2))

        CRITICAL: Pairs where both A and F are 0 are skipped.
        """
        a, f = _valid_pairs(actuals, forecasts)
        denominator = (np.abs(a) + np.abs(f)) / 2
        mask = denominator != 0
        if not np.any(mask):
            return None
        return float(np.mean(np.abs(a[mask] - f[mask]) / denominator[mask]) * 100.0)

    @staticmethod
    def bias(actuals: Values, forecasts: Values) -> float | None:
        """Forecast bias.

        Formula: mean(A - F)
        """
        a, f = _valid_pairs(actuals, forecasts)
        if len(a) == 0:
            return None
        return float(np.mean(a - f))

    @classmethod
    def calculate_all(cls, actuals: Values, forecasts: Values) -> ForecastMetrics:
        """Calculate all seven metrics.

        Args:
            actuals: Observed values.
            forecasts: Forecasts aligned with actuals.

        Returns:
            ForecastMetrics with every metric.

        Raises:
            ValueError: If the inputs have different lengths.
        """
        return ForecastMetrics(
            mape=cls.mape(actuals, forecasts),
            rmse=cls.rmse(actuals, forecasts),
            mae=cls.mae(actuals, forecasts),
            r2=cls.r2(actuals, forecasts),
            mase=cls.mase(actuals, forecasts),
            smape=cls.smape(actuals, forecasts),
            bias=cls.bias(actuals, forecasts),
        )

    @classmethod
    def calculate_error_metrics(cls, actuals: Values, forecasts: Values) -> ErrorMetrics:
        """Error summary (MSE, RMSE, MAE, MAPE, bias).

        Args:
            actuals: Observed values.
            forecasts: Forecasts aligned with actuals.

        Returns:
            ErrorMetrics.
        """
        rmse = cls.rmse(actuals, forecasts)
        return ErrorMetrics(
            mse=None if rmse is None else rmse**2,
            rmse=rmse,
            mae=cls.mae(actuals, forecasts),
            mape=cls.mape(actuals, forecasts),
            bias=cls.bias(actuals, forecasts),
        )
