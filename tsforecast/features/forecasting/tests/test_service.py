"""Tests for the forecasting service."""

import math

import pytest

import tsforecast.features.forecasting.service as forecasting_service
from tsforecast.features.forecasting.schemas import (
    ALL_METHODS,
    ForecastMethod,
    ForecastOptions,
    ForecastResult,
    MethodForecast,
)
from tsforecast.features.forecasting.service import (
    INSUFFICIENT_DATA_REASON,
    ForecastingService,
    critical_value,
    select_best_method,
)


@pytest.fixture
def service() -> ForecastingService:
    return ForecastingService()


class TestCriticalValue:
    """Tests for critical_value."""

    @pytest.mark.parametrize(
        ("level", "expected"),
        [(0.90, 1.645), (0.95, 1.96), (0.99, 2.576), (0.5, 1.96)],
    )
    def test_anchor_values(self, level, expected):
        """Test exact values and the 1.96 default."""
        assert critical_value(level) == expected

    def test_interpolates_between_anchors(self):
        """Test linear interpolation between 90% and 95%."""
        assert critical_value(0.925) == pytest.approx((1.645 + 1.96) / 2)

    def test_interpolates_below_ninety(self):
        """Test interpolation from 80% up to 90%."""
        assert critical_value(0.85) == pytest.approx((1.28 + 1.645) / 2)


class TestSelectBestMethod:
    """Tests for select_best_method."""

    def test_lowest_accuracy_wins(self):
        """Test that the minimum non-null accuracy is selected."""
        methods = {
            ForecastMethod.NAIVE: MethodForecast(name="n", description="", values=[], accuracy=5.0),
            ForecastMethod.MOVING_AVERAGE: MethodForecast(
                name="m", description="", values=[], accuracy=None
            ),
            ForecastMethod.LINEAR_REGRESSION: MethodForecast(
                name="l", description="", values=[], accuracy=2.0
            ),
        }

        assert select_best_method(methods) == ForecastMethod.LINEAR_REGRESSION

    def test_first_wins_on_ties(self):
        """Test that ties keep the earlier method."""
        methods = {
            ForecastMethod.NAIVE: MethodForecast(name="n", description="", values=[], accuracy=1.0),
            ForecastMethod.MOVING_AVERAGE: MethodForecast(
                name="m", description="", values=[], accuracy=1.0
            ),
        }

        assert select_best_method(methods) == ForecastMethod.NAIVE

    def test_no_accuracy(self):
        """Test that no scored method gives None."""
        methods = {
            ForecastMethod.NAIVE: MethodForecast(name="n", description="", values=[]),
        }

        assert select_best_method(methods) is None


class TestMethodParameters:
    """Tests for ForecastingService.method_parameters."""

    def test_defaults_fill_unset_values(self, service):
        """Test configured defaults and the length-based window."""
        options = ForecastOptions()

        assert service.method_parameters(
            ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING, 30, options, 7
        ) == {"alpha": 0.3, "beta": 0.1}
        assert service.method_parameters(ForecastMethod.MOVING_AVERAGE, 30, options, 7) == {
            "window": 5
        }

    def test_zero_overrides_are_kept(self, service):
        """Test that an explicit zero is not replaced by the default."""
        options = ForecastOptions(beta=0.0, gamma=0.0)

        assert service.method_parameters(ForecastMethod.HOLT_WINTERS, 30, options, 7) == {
            "alpha": 0.3,
            "beta": 0.0,
            "gamma": 0.0,
            "seasonal_period": 7,
        }


class TestGenerateForecasts:
    """Tests for ForecastingService.generate_forecasts."""

    def test_insufficient_data(self, service):
        """Test that fewer than 3 points produce no forecasts."""
        result = service.generate_forecasts(["2024-01-01", "2024-01-02"], [1.0, 2.0], "daily")

        assert result.methods == {}
        assert result.best_method is None
        assert result.reason == INSUFFICIENT_DATA_REASON

    def test_all_methods_with_enough_data(self, service, daily_dates, noisy_series):
        """Test that every method runs when two seasons are available."""
        result = service.generate_forecasts(daily_dates, noisy_series, "daily")

        assert set(result.methods) == set(ALL_METHODS)
        assert result.horizon_periods == 7
        assert result.seasonal_period == 7
        assert result.horizon_dates[0] == "2024-01-31"
        assert len(result.horizon_dates) == 7
        assert all(len(m.values) == 7 for m in result.methods.values())
        assert result.best_method is not None

    def test_seasonal_methods_need_two_seasons(self, service, daily_dates, noisy_series):
        """Test that seasonal methods are skipped below 2 * period points."""
        result = service.generate_forecasts(daily_dates[:10], noisy_series[:10], "daily")

        assert ForecastMethod.SEASONAL_NAIVE not in result.methods
        assert ForecastMethod.HOLT_WINTERS not in result.methods
        assert ForecastMethod.NAIVE in result.methods

    def test_single_method_option(self, service, daily_dates, noisy_series):
        """Test restricting the run to one method with an explicit period."""
        options = ForecastOptions(
            method=ForecastMethod.SEASONAL_NAIVE, horizon=3, seasonal_period=3
        )

        result = service.generate_forecasts(daily_dates, noisy_series, "daily", options)

        assert list(result.methods) == [ForecastMethod.SEASONAL_NAIVE]
        forecast = result.methods[ForecastMethod.SEASONAL_NAIVE]
        assert forecast.values == [10.0, 11.0, 12.0]
        assert forecast.accuracy == 0.0
        assert forecast.parameters == {"seasonal_period": 3}

    def test_linear_series_prefers_trend_methods(self, service, daily_dates, linear_series):
        """Test that a perfect line is forecast with ~zero error."""
        result = service.generate_forecasts(daily_dates, linear_series, "daily")

        assert result.best_method in {
            ForecastMethod.LINEAR_REGRESSION,
            ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING,
        }
        assert result.best.accuracy == pytest.approx(0.0, abs=1e-9)

    def test_linear_regression_reports_coefficients(self, service, daily_dates, linear_series):
        """Test that slope and intercept are attached."""
        result = service.generate_forecasts(daily_dates, linear_series, "daily")

        coefficients = result.methods[ForecastMethod.LINEAR_REGRESSION].coefficients
        assert coefficients["slope"] == pytest.approx(1.0)
        assert coefficients["intercept"] == pytest.approx(1.0)

    def test_description_lists_parameters(self, service, daily_dates, noisy_series):
        """Test that parameters are rendered into the description."""
        options = ForecastOptions(method=ForecastMethod.MOVING_AVERAGE, window=4)

        result = service.generate_forecasts(daily_dates, noisy_series, "daily", options)

        assert result.methods[ForecastMethod.MOVING_AVERAGE].description.endswith("(window: 4)")

    def test_completion_event_carries_options_hash(
        self, service, daily_dates, noisy_series, monkeypatch
    ):
        """Test that the completion log event is keyed by the options hash."""
        events = []

        class RecordingLogger:
            def info(self, event, **kwargs):
                events.append((event, kwargs))

            def debug(self, event, **kwargs):
                pass

            warning = debug

        monkeypatch.setattr(forecasting_service, "logger", RecordingLogger())
        options = ForecastOptions(method=ForecastMethod.NAIVE, horizon=3)

        service.generate_forecasts(daily_dates, noisy_series, "daily", options)

        completed = [kw for event, kw in events if event == "forecasting.forecasts_generated"]
        assert completed[0]["config_hash"] == options.config_hash()

    def test_failing_method_is_omitted(self, service, daily_dates, noisy_series, monkeypatch):
        """Test that a numeric failure drops only that method."""
        original = service._run_method

        def flaky(method, values, horizon, params):
            if method == ForecastMethod.HOLT_WINTERS:
                raise ZeroDivisionError("float division by zero")
            return original(method, values, horizon, params)

        monkeypatch.setattr(service, "_run_method", flaky)

        result = service.generate_forecasts(daily_dates, noisy_series, "daily")

        assert ForecastMethod.HOLT_WINTERS not in result.methods
        assert len(result.methods) == len(ALL_METHODS) - 1


class TestConfidenceIntervals:
    """Tests for ForecastingService.generate_confidence_intervals."""

    def test_naive_intervals(self, service, daily_dates, noisy_series):
        """Test margins from walk-forward RMSE widening 10% per step."""
        options = ForecastOptions(method=ForecastMethod.NAIVE, horizon=3)
        forecasts = service.generate_forecasts(daily_dates, noisy_series, "daily", options)

        result = service.generate_confidence_intervals(noisy_series, forecasts, 0.95)

        ci = result.best.confidence_intervals
        rmse = math.sqrt(1.9)
        assert ci.level == pytest.approx(95.0)
        assert ci.rmse == pytest.approx(rmse)
        for i, (lower, upper) in enumerate(zip(ci.lower, ci.upper, strict=True)):
            margin = 1.96 * rmse * (1 + 0.1 * i)
            assert lower == pytest.approx(12.0 - margin)
            assert upper == pytest.approx(12.0 + margin)

    def test_input_is_not_mutated(self, service, daily_dates, noisy_series):
        """Test that intervals are attached to a copy."""
        forecasts = service.generate_forecasts(daily_dates, noisy_series, "daily")

        result = service.generate_confidence_intervals(noisy_series, forecasts)

        assert result.best.confidence_intervals is not None
        assert forecasts.best.confidence_intervals is None

    def test_no_errors_returns_input(self, service):
        """Test that the input is returned when no one-step error exists."""
        forecasts = ForecastResult(
            horizon_periods=1,
            methods={
                ForecastMethod.NAIVE: MethodForecast(
                    name="Naive Forecast", description="", values=[2.0], accuracy=1.0
                )
            },
            best_method=ForecastMethod.NAIVE,
        )

        result = service.generate_confidence_intervals([1.0, 2.0], forecasts)

        assert result is forecasts

    def test_no_best_method(self, service):
        """Test that a result without a best method gets no intervals."""
        forecasts = ForecastResult(horizon_periods=1)

        result = service.generate_confidence_intervals([1.0, 2.0, 3.0], forecasts)

        assert result.best is None

    def test_forecast_with_intervals(self, service, daily_dates, noisy_series):
        """Test the combined call."""
        result = service.forecast_with_intervals(daily_dates, noisy_series, "daily")

        assert result.best.confidence_intervals is not None
        assert len(result.best.confidence_intervals.upper) == 7
