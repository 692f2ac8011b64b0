"""Tests for grid-search hyperparameter tuning."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from tsforecast.core.exceptions import ValidationError
from tsforecast.features.forecasting.schemas import ForecastMethod, Frequency
from tsforecast.features.training.schemas import TuningOptions
from tsforecast.features.training.tuning import (
    ALPHA_GRID,
    WINDOW_GRID,
    HyperparameterTuner,
    _is_better,
    calculate_tuning_metrics,
    parameter_combinations,
    seasonal_periods_for_frequency,
)


@pytest.fixture
def tuner() -> HyperparameterTuner:
    return HyperparameterTuner()


class TestHelpers:
    """Tests for the tuning helpers."""

    def test_parameter_combinations(self):
        """Test the cartesian product of a grid."""
        combos = list(parameter_combinations({"alpha": [0.1, 0.3], "beta": [0.05, 0.1]}))

        assert len(combos) == 4
        assert combos[0] == {"alpha": 0.1, "beta": 0.05}
        assert combos[-1] == {"alpha": 0.3, "beta": 0.1}

    def test_empty_grid_has_no_combinations(self):
        """Test that an empty grid yields nothing."""
        assert list(parameter_combinations({})) == []

    @pytest.mark.parametrize(
        ("frequency", "expected"),
        [
            ("daily", (7, 14)),
            ("weekly", (4, 8, 13)),
            ("monthly", (3, 4, 6, 12)),
            ("quarterly", (4,)),
            ("yearly", (4, 5, 10)),
            ("irregular", (7,)),
        ],
    )
    def test_seasonal_periods(self, frequency, expected):
        """Test candidate season lengths per frequency."""
        assert seasonal_periods_for_frequency(frequency) == expected

    def test_metrics_over_overlapping_prefix(self):
        """Test that only the common prefix is scored."""
        metrics = calculate_tuning_metrics([10.0, 20.0, 30.0], [11.0, 18.0])

        assert metrics.mae == pytest.approx(1.5)
        assert metrics.mape == pytest.approx(10.0)

    def test_r2_is_maximised(self):
        """Test the comparison direction per metric."""
        assert _is_better(0.9, 0.8, "r2")
        assert not _is_better(0.9, 0.8, "mape")
        assert _is_better(5.0, None, "rmse")


class TestParameterGrid:
    """Tests for HyperparameterTuner.parameter_grid."""

    def test_grids_per_method(self, tuner):
        """Test the built-in grids."""
        assert tuner.parameter_grid(ForecastMethod.MOVING_AVERAGE, "daily") == {
            "window": WINDOW_GRID
        }
        assert tuner.parameter_grid(ForecastMethod.EXPONENTIAL_SMOOTHING, "daily") == {
            "alpha": ALPHA_GRID
        }
        assert set(tuner.parameter_grid(ForecastMethod.HOLT_WINTERS, "daily")) == {
            "alpha",
            "beta",
            "gamma",
            "seasonal_period",
        }

    def test_untunable_methods(self, tuner):
        """Test that naive and linear regression have nothing to tune."""
        assert tuner.parameter_grid(ForecastMethod.NAIVE, "daily") == {}
        assert tuner.parameter_grid(ForecastMethod.LINEAR_REGRESSION, "daily") == {}

    def test_overrides(self, tuner):
        """Test that option grids and a fixed period replace the defaults."""
        options = TuningOptions(alpha_values=(0.4,), seasonal_period=12)

        grid = tuner.parameter_grid(ForecastMethod.HOLT_WINTERS, Frequency.DAILY, options)

        assert grid["alpha"] == (0.4,)
        assert grid["seasonal_period"] == (12,)

    def test_default_parameters(self, tuner):
        """Test the fallback parameters."""
        assert tuner.default_parameters(ForecastMethod.MOVING_AVERAGE, "daily") == {"window": 5}
        assert tuner.default_parameters(ForecastMethod.SEASONAL_NAIVE, "monthly") == {
            "seasonal_period": 3
        }
        assert tuner.default_parameters(ForecastMethod.HOLT_WINTERS, "daily") == {
            "alpha": 0.3,
            "beta": 0.1,
            "gamma": 0.1,
            "seasonal_period": 7,
        }


class TestTune:
    """Tests for HyperparameterTuner.tune."""

    def test_smallest_window_tracks_a_trend(self, tuner, daily_dates, trend_values):
        """Test that the shortest window wins on a rising line."""
        result = tuner.tune(
            ForecastMethod.MOVING_AVERAGE, daily_dates[:30], trend_values, "daily"
        )

        assert result.parameters == {"window": 3}
        assert result.evaluated == len(WINDOW_GRID)
        assert result.used_defaults is False
        assert result.metrics.mape is not None

    def test_fixed_grid_for_holt_winters(self, tuner, daily_dates, weekly_pattern):
        """Test tuning over a small explicit grid."""
        options = TuningOptions(
            alpha_values=(0.3,),
            beta_values=(0.1,),
            gamma_values=(0.1, 0.5),
            seasonal_period=7,
        )

        result = tuner.tune(
            ForecastMethod.HOLT_WINTERS, daily_dates[:56], weekly_pattern, "daily", options=options
        )

        assert result.evaluated == 2
        assert result.parameters["seasonal_period"] == 7
        assert result.parameters["gamma"] in (0.1, 0.5)

    def test_untunable_method_uses_defaults(self, tuner, daily_dates, trend_values):
        """Test that an empty grid returns the defaults."""
        result = tuner.tune(ForecastMethod.NAIVE, daily_dates[:30], trend_values, "daily")

        assert result.used_defaults is True
        assert result.parameters == {}

    def test_invalid_split_uses_defaults(self, tuner, daily_dates, trend_values):
        """Test that a failing split falls back to the defaults."""
        options = TuningOptions(split_ratio=(0.5, 0.2, 0.2))

        result = tuner.tune(
            ForecastMethod.EXPONENTIAL_SMOOTHING,
            daily_dates[:30],
            trend_values,
            "daily",
            options=options,
        )

        assert result.used_defaults is True
        assert result.parameters == {"alpha": 0.3}

    def test_too_little_data_uses_defaults(self, tuner, daily_dates):
        """Test that nothing scorable falls back to the defaults."""
        result = tuner.tune(
            ForecastMethod.EXPONENTIAL_SMOOTHING, daily_dates[:4], [1.0, 2.0, 3.0, 4.0], "daily"
        )

        assert result.used_defaults is True
        assert result.evaluated == 0

    def test_unknown_metric_raises(self, tuner, daily_dates, trend_values):
        """Test that an unsupported metric is rejected."""
        options = TuningOptions.model_construct(primary_metric="mase")

        with pytest.raises(ValidationError, match="Unknown tuning metric"):
            tuner.tune(
                ForecastMethod.MOVING_AVERAGE,
                daily_dates[:30],
                trend_values,
                "daily",
                options=options,
            )


class TestTuningOptions:
    """Tests for TuningOptions."""

    def test_smoothing_grid_range(self):
        """Test that smoothing grids lie in (0, 1]."""
        with pytest.raises(PydanticValidationError, match="Smoothing factors"):
            TuningOptions(alpha_values=(0.0, 0.5))
