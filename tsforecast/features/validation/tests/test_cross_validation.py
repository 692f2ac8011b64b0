"""Tests for walk-forward cross-validation.

CRITICAL: Each fold trains only on data before its test window.
"""

import pytest

from tsforecast.core.exceptions import InsufficientDataError
from tsforecast.features.forecasting.schemas import ForecastMethod
from tsforecast.features.validation.cross_validation import CrossValidator, create_folds
from tsforecast.features.validation.schemas import CVOptions


class TestCreateFolds:
    """Tests for create_folds."""

    def test_folds_at_tail(self):
        """Test the test windows of the last horizon * num_folds points."""
        values = [float(v) for v in range(20)]
        dates = [str(v) for v in range(20)]

        folds = create_folds(dates, values, min_train_size=10, horizon=2, num_folds=3)

        assert [len(f.train_values) for f in folds] == [14, 16, 18]
        assert [f.test_values for f in folds] == [[14.0, 15.0], [16.0, 17.0], [18.0, 19.0]]

    def test_no_future_data_in_training(self):
        """CRITICAL: training data ends right before the test window."""
        values = [float(v) for v in range(20)]
        folds = create_folds([str(v) for v in range(20)], values, 10, 2, 3)

        for fold in folds:
            assert max(fold.train_values) < min(fold.test_values)
            assert fold.train_values[-1] + 1 == fold.test_values[0]

    def test_insufficient_data(self):
        """Test that n must cover min_train_size + horizon * num_folds."""
        with pytest.raises(InsufficientDataError):
            create_folds(["a"] * 15, [1.0] * 15, min_train_size=10, horizon=2, num_folds=3)


class TestCrossValidator:
    """Tests for CrossValidator."""

    def test_default_minimum_training_size(self, linear_dates, linear_values):
        """Test that the minimum training size defaults to max(10, 0.3 n)."""
        validator = CrossValidator()

        assert validator._resolve(40, CVOptions()) == (12, 5)
        assert validator._resolve(20, CVOptions(num_folds=2)) == (10, 2)

    def test_linear_regression_wins_on_a_line(self, linear_dates, linear_values):
        """Test that a perfect line selects linear regression."""
        options = CVOptions(
            horizon=2,
            num_folds=3,
            methods=(ForecastMethod.NAIVE, ForecastMethod.LINEAR_REGRESSION),
        )

        result = CrossValidator().run(linear_dates, linear_values, "daily", options)

        assert result.best_method == ForecastMethod.LINEAR_REGRESSION
        assert len(result.fold_results) == 3
        summary = result.methods[ForecastMethod.LINEAR_REGRESSION]
        assert len(summary.fold_metrics) == 3
        assert summary.average_metrics.mape == pytest.approx(0.0, abs=1e-9)
        naive = result.methods[ForecastMethod.NAIVE].average_metrics
        assert naive.mae == pytest.approx(1.5)

    def test_failing_method_is_recorded_per_fold(self, linear_dates, linear_values):
        """Test that a method without a forecast gets an error entry."""
        options = CVOptions(
            min_train_size=5,
            horizon=1,
            num_folds=2,
            methods=(ForecastMethod.SEASONAL_NAIVE, ForecastMethod.NAIVE),
        )

        result = CrossValidator().run(linear_dates[:12], linear_values[:12], "daily", options)

        for fold in result.fold_results:
            assert fold.method_results[ForecastMethod.SEASONAL_NAIVE].error is not None
            assert fold.method_results[ForecastMethod.NAIVE].metrics is not None
        assert result.methods[ForecastMethod.SEASONAL_NAIVE].average_metrics.mape is None
        assert result.best_method == ForecastMethod.NAIVE

    def test_nested_matches_run(self, linear_dates, linear_values):
        """Test that nested CV returns the same result as run."""
        options = CVOptions(horizon=2, num_folds=2, methods=(ForecastMethod.NAIVE,))
        validator = CrossValidator()

        assert validator.nested(linear_dates, linear_values, "daily", options) == validator.run(
            linear_dates, linear_values, "daily", options
        )

    def test_too_short_raises(self, linear_dates, linear_values):
        """Test that impossible fold settings raise."""
        with pytest.raises(InsufficientDataError):
            CrossValidator().run(linear_dates[:10], linear_values[:10], "daily", CVOptions())
