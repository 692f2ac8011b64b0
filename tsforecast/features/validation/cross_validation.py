"""Walk-forward cross-validation across forecasting methods.

CRITICAL: Test windows sit at the tail of the series and never overlap;
each fold trains on everything before its test window.

Example (n=20, horizon=2, num_folds=3):
    Fold 1: train [0..14), test [14..16)
    Fold 2: train [0..16), test [16..18)
    Fold 3: train [0..18), test [18..20)
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from tsforecast.core.config import Settings, get_settings
from tsforecast.core.exceptions import InsufficientDataError
from tsforecast.core.logging import get_logger
from tsforecast.features.forecasting.schemas import ForecastMethod, ForecastOptions, Frequency
from tsforecast.features.forecasting.service import ForecastingService
from tsforecast.features.validation.metrics import MetricsCalculator
from tsforecast.features.validation.schemas import (
    METRIC_NAMES,
    CVFold,
    CVMethodSummary,
    CVOptions,
    CVResult,
    FoldMethodResult,
    FoldResult,
    ForecastMetrics,
)

logger = get_logger(__name__)

MIN_TRAIN_FLOOR = 10
MIN_TRAIN_FRACTION = 0.3


def create_folds(
    time_values: Sequence[str],
    values: Sequence[float],
    min_train_size: int,
    horizon: int,
    num_folds: int,
) -> list[CVFold]:
    """Build walk-forward folds at the tail of a series.

    Args:
        time_values: Observed timestamps.
        values: Observed values.
        min_train_size: Minimum training length of the first fold.
        horizon: Test window length.
        num_folds: Number of folds.

    Returns:
        Folds in chronological order.

    Raises:
        InsufficientDataError: If n < min_train_size + horizon * num_folds.
    """
    n = len(values)
    total_test_size = horizon * num_folds
    if n < min_train_size + total_test_size:
        raise InsufficientDataError(
            "Not enough data for the specified cross-validation parameters",
            details={
                "n_points": n,
                "min_train_size": min_train_size,
                "horizon": horizon,
                "num_folds": num_folds,
            },
        )

    first_test_index = n - total_test_size
    folds: list[CVFold] = []
    for i in range(num_folds):
        test_start = first_test_index + i * horizon
        test_end = test_start + horizon
        folds.append(
            CVFold(
                train_time_values=list(time_values[:test_start]),
                train_values=list(values[:test_start]),
                test_time_values=list(time_values[test_start:test_end]),
                test_values=list(values[test_start:test_end]),
            )
        )
    return folds


def _average(fold_metrics: list[ForecastMetrics]) -> ForecastMetrics:
    averaged: dict[str, float | None] = {}
    for name in METRIC_NAMES:
        present = [
            value
            for m in fold_metrics
            if (value := m.get(name)) is not None and not math.isnan(value)
        ]
        averaged[name] = sum(present) / len(present) if present else None
    return ForecastMetrics(**averaged)


def _best_method(methods: dict[ForecastMethod, CVMethodSummary]) -> ForecastMethod | None:
    """Lowest mean MAPE; lowest mean RMSE if the MAPE winner has no MAPE."""
    candidates = [
        method
        for method, summary in methods.items()
        if summary.average_metrics.mape is not None or summary.average_metrics.rmse is not None
    ]
    if not candidates:
        return None

    def score(method: ForecastMethod, metric: str) -> float:
        value = methods[method].average_metrics.get(metric)
        return math.inf if value is None else value

    best = min(candidates, key=lambda m: score(m, "mape"))
    if methods[best].average_metrics.mape is None:
        best = min(candidates, key=lambda m: score(m, "rmse"))
    return best


class CrossValidator:
    """Runs every configured method on every fold.

    Example:
        >>> validator = CrossValidator()
        >>> result = validator.run(dates, values, "daily", CVOptions(horizon=2, num_folds=3))
        >>> result.best_method
    """

    def __init__(
        self,
        forecasting: ForecastingService | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the validator.

        Args:
            forecasting: Forecasting service used for fold forecasts.
            settings: Engine settings (defaults to the cached settings).
        """
        self.settings = settings or get_settings()
        self.forecasting = forecasting or ForecastingService(self.settings)

    def create_folds(
        self,
        time_values: Sequence[str],
        values: Sequence[float],
        options: CVOptions | None = None,
    ) -> list[CVFold]:
        """Folds for a series using the resolved options."""
        options = options or CVOptions()
        min_train_size, num_folds = self._resolve(len(values), options)
        return create_folds(time_values, values, min_train_size, options.horizon, num_folds)

    def _resolve(self, n: int, options: CVOptions) -> tuple[int, int]:
        min_train_size = (
            options.min_train_size
            if options.min_train_size is not None
            else max(MIN_TRAIN_FLOOR, math.floor(n * MIN_TRAIN_FRACTION))
        )
        num_folds = (
            options.num_folds
            if options.num_folds is not None
            else self.settings.validation_default_num_folds
        )
        return min_train_size, num_folds

    def _run_fold_method(
        self,
        fold: CVFold,
        method: ForecastMethod,
        frequency: Frequency,
    ) -> FoldMethodResult:
        result = self.forecasting.generate_forecasts(
            fold.train_time_values,
            fold.train_values,
            frequency,
            ForecastOptions(method=method, horizon=len(fold.test_values)),
        )
        if method not in result.methods:
            raise ValueError(f"{method.value} produced no forecast")
        forecasts = result.methods[method].values
        return FoldMethodResult(
            metrics=MetricsCalculator.calculate_all(fold.test_values, forecasts),
            forecasts=forecasts,
        )

    def run(
        self,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
        options: CVOptions | None = None,
    ) -> CVResult:
        """Cross-validate every configured method.

        A method that fails on a fold gets an error entry for that fold and
        contributes no metrics from it; other methods and folds are unaffected.

        Args:
            time_values: Observed timestamps.
            values: Observed values.
            frequency: Series frequency.
            options: Cross-validation options.

        Returns:
            CVResult with per-fold results, mean metrics and the best method.

        Raises:
            InsufficientDataError: If the series is too short for the folds.
        """
        options = options or CVOptions()
        freq = Frequency.parse(frequency)
        folds = self.create_folds(time_values, values, options)

        result = CVResult(
            methods={m: CVMethodSummary(name=m.value) for m in options.methods},
        )

        for fold_number, fold in enumerate(folds, start=1):
            fold_result = FoldResult(fold=fold_number)
            for method in options.methods:
                try:
                    method_result = self._run_fold_method(fold, method, freq)
                except (ValueError, ArithmeticError) as e:
                    logger.warning(
                        "validation.cv_fold_failed",
                        fold=fold_number,
                        method=method.value,
                        error=str(e),
                    )
                    fold_result.method_results[method] = FoldMethodResult(error=str(e))
                    continue
                fold_result.method_results[method] = method_result
                if method_result.metrics is not None:
                    result.methods[method].fold_metrics.append(method_result.metrics)
            result.fold_results.append(fold_result)

        for summary in result.methods.values():
            if summary.fold_metrics:
                summary.average_metrics = _average(summary.fold_metrics)

        result.best_method = _best_method(result.methods)

        logger.info(
            "validation.cv_completed",
            n_points=len(values),
            folds=len(folds),
            horizon=options.horizon,
            methods=[m.value for m in options.methods],
            best_method=result.best_method.value if result.best_method else None,
        )
        return result

    def nested(
        self,
        time_values: Sequence[str],
        values: Sequence[float],
        frequency: Frequency | str | None,
        options: CVOptions | None = None,
    ) -> CVResult:
        """Nested cross-validation entry point; currently identical to ``run``."""
        return self.run(time_values, values, frequency, options)
