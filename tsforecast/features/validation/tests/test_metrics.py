"""Tests for forecast accuracy metrics."""

import math

import numpy as np
import pytest

from tsforecast.features.validation.metrics import MetricsCalculator

ACTUALS = [100.0, 200.0, 300.0]
FORECASTS = [110.0, 190.0, 330.0]


class TestPointMetrics:
    """Tests for the individual metrics."""

    def test_mape(self):
        """Test MAPE in percent."""
        assert MetricsCalculator.mape(ACTUALS, FORECASTS) == pytest.approx(25 / 3)

    def test_mape_skips_zero_actuals(self):
        """Test that zero actuals are excluded and all-zero gives None."""
        assert MetricsCalculator.mape([0.0, 10.0], [5.0, 11.0]) == pytest.approx(10.0)
        assert MetricsCalculator.mape([0.0, 0.0], [1.0, 2.0]) is None

    @pytest.mark.parametrize("k", [0.001, 0.5, 2.0, 1000.0])
    @pytest.mark.parametrize(
        ("actuals", "forecasts"),
        [
            (ACTUALS, FORECASTS),
            ([0.0, 50.0, 0.0, 80.0], [3.0, 45.0, -2.0, 100.0]),
        ],
    )
    def test_mape_is_scale_invariant(self, k, actuals, forecasts):
        """Test that scaling actuals and forecasts by k > 0 leaves MAPE unchanged."""
        scaled = MetricsCalculator.mape([k * a for a in actuals], [k * f for f in forecasts])

        assert scaled == pytest.approx(MetricsCalculator.mape(actuals, forecasts))

    def test_rmse_mae_bias(self):
        """Test RMSE, MAE and signed bias."""
        assert MetricsCalculator.rmse(ACTUALS, FORECASTS) == pytest.approx(math.sqrt(1100 / 3))
        assert MetricsCalculator.mae(ACTUALS, FORECASTS) == pytest.approx(50 / 3)
        assert MetricsCalculator.bias(ACTUALS, FORECASTS) == pytest.approx(-10.0)

    def test_r2(self):
        """Test R2 and its zero-variance case."""
        assert MetricsCalculator.r2(ACTUALS, FORECASTS) == pytest.approx(1 - 1100 / 20000)
        assert MetricsCalculator.r2([5.0, 5.0], [4.0, 6.0]) is None

    def test_mase(self):
        """Test MASE against one-step naive differencing."""
        assert MetricsCalculator.mase(ACTUALS, FORECASTS) == pytest.approx((50 / 3) / 100)

    def test_mase_edge_cases(self):
        """Test that MASE is None for short, mismatched or flat input."""
        assert MetricsCalculator.mase([1.0], [1.0]) is None
        assert MetricsCalculator.mase([1.0, 2.0], [1.0]) is None
        assert MetricsCalculator.mase([3.0, 3.0, 3.0], [1.0, 2.0, 3.0]) is None

    def test_smape(self):
        """Test SMAPE and that double zeros are skipped."""
        expected = (10 / 105 + 10 / 195 + 30 / 315) / 3 * 100

        assert MetricsCalculator.smape(ACTUALS, FORECASTS) == pytest.approx(expected)
        assert MetricsCalculator.smape([0.0, 10.0], [0.0, 10.0]) == pytest.approx(0.0)
        assert MetricsCalculator.smape([0.0], [0.0]) is None

    def test_missing_values_are_ignored(self):
        """Test that None and NaN pairs drop out."""
        actuals = [100.0, None, 300.0, np.nan]
        forecasts = [110.0, 5.0, None, 4.0]

        assert MetricsCalculator.mae(actuals, forecasts) == pytest.approx(10.0)

    def test_no_valid_pairs(self):
        """Test that nothing to score gives None."""
        assert MetricsCalculator.rmse([None], [1.0]) is None
        assert MetricsCalculator.mae([], []) is None

    def test_length_mismatch_raises(self):
        """Test that misaligned inputs are rejected."""
        with pytest.raises(ValueError, match="Length mismatch"):
            MetricsCalculator.rmse([1.0, 2.0], [1.0])


class TestAggregates:
    """Tests for calculate_all and calculate_error_metrics."""

    def test_calculate_all(self):
        """Test that all seven metrics are filled."""
        metrics = MetricsCalculator.calculate_all(ACTUALS, FORECASTS)

        assert metrics.get("mape") == pytest.approx(25 / 3)
        assert all(
            metrics.get(name) is not None
            for name in ("mape", "rmse", "mae", "r2", "mase", "smape", "bias")
        )

    def test_perfect_forecast(self):
        """Test a perfect forecast."""
        metrics = MetricsCalculator.calculate_all(ACTUALS, ACTUALS)

        assert metrics.mape == 0.0
        assert metrics.rmse == 0.0
        assert metrics.r2 == 1.0

    def test_error_metrics(self):
        """Test that MSE is the square of RMSE."""
        errors = MetricsCalculator.calculate_error_metrics(ACTUALS, FORECASTS)

        assert errors.mse == pytest.approx(1100 / 3)
        assert errors.bias == pytest.approx(-10.0)

    def test_error_metrics_empty(self):
        """Test that MSE is None without valid pairs."""
        assert MetricsCalculator.calculate_error_metrics([], []).mse is None
