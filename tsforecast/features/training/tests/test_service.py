"""Tests for the training service."""

from datetime import UTC, datetime

import pytest

from tsforecast.core.exceptions import InsufficientDataError, ValidationError
from tsforecast.features.featuresets.schemas import Feature
from tsforecast.features.forecasting.schemas import ALL_METHODS, ForecastMethod, TimeSeries
from tsforecast.features.training.schemas import TrainedModel, TrainingOptions
from tsforecast.features.training.service import TrainingService


@pytest.fixture
def service() -> TrainingService:
    return TrainingService()


class TestDefaultParameters:
    """Tests for TrainingService.get_default_parameters."""

    @pytest.mark.parametrize(
        ("method", "expected"),
        [
            (ForecastMethod.NAIVE, {}),
            (ForecastMethod.MOVING_AVERAGE, {"window": 5}),
            (ForecastMethod.EXPONENTIAL_SMOOTHING, {"alpha": 0.3}),
            (ForecastMethod.DOUBLE_EXPONENTIAL_SMOOTHING, {"alpha": 0.3, "beta": 0.1}),
            (ForecastMethod.SEASONAL_NAIVE, {}),
            (ForecastMethod.HOLT_WINTERS, {"alpha": 0.3, "beta": 0.1, "gamma": 0.1}),
            (ForecastMethod.LINEAR_REGRESSION, {}),
        ],
    )
    def test_defaults(self, service, method, expected):
        """Test defaults with an unset season length left out."""
        assert service.get_default_parameters(method) == expected

    def test_option_overrides(self, service):
        """Test that option values replace the defaults."""
        options = TrainingOptions(alpha=0.6, window=3, seasonal_period=12)

        assert service.get_default_parameters(ForecastMethod.MOVING_AVERAGE, options) == {
            "window": 3
        }
        assert service.get_default_parameters(ForecastMethod.HOLT_WINTERS, options) == {
            "alpha": 0.6,
            "beta": 0.1,
            "gamma": 0.1,
            "seasonal_period": 12,
        }

    def test_zero_overrides_are_kept(self, service):
        """Test that an explicit zero is not replaced by the default."""
        options = TrainingOptions(beta=0.0, gamma=0.0)

        assert service.get_default_parameters(ForecastMethod.HOLT_WINTERS, options) == {
            "alpha": 0.3,
            "beta": 0.0,
            "gamma": 0.0,
        }


class TestTrainModel:
    """Tests for TrainingService.train_model."""

    def test_trained_model_fields(self, service, daily_dates, trend_values):
        """Test the recorded metrics, features and metadata."""
        features = [Feature(name="lag_1", values=[None, *trend_values[:-1]], description="lag")]

        model = service.train_model(
            ForecastMethod.NAIVE, daily_dates[:30], trend_values, "daily", features
        )

        assert model.is_trained
        assert model.parameters == {}
        assert model.metrics["accuracy"] is not None
        assert model.features[0].name == "lag_1"
        assert model.features[0].importance == 0.0
        assert model.version == "1.0.0"
        assert model.timestamp.tzinfo is not None

    def test_resolved_season_length_is_stored(self, service, daily_dates, weekly_pattern):
        """Test that a detected season length is kept on the model."""
        model = service.train_model(
            ForecastMethod.HOLT_WINTERS, daily_dates[:56], weekly_pattern, "daily"
        )

        assert model.parameters["seasonal_period"] == 7
        assert model.parameters["alpha"] == 0.3

    def test_explicit_parameters(self, service, daily_dates, trend_values):
        """Test that explicit parameters are used as given."""
        model = service.train_model(
            ForecastMethod.MOVING_AVERAGE,
            daily_dates[:30],
            trend_values,
            "daily",
            parameters={"window": 2},
        )

        assert model.parameters == {"window": 2}

    def test_unknown_parameter_raises(self, service, daily_dates, trend_values):
        """Test that parameters outside the known set are rejected."""
        with pytest.raises(ValidationError, match="Unknown parameters"):
            service.train_model(
                ForecastMethod.NAIVE,
                daily_dates[:30],
                trend_values,
                "daily",
                parameters={"order": 2},
            )

    def test_no_forecast_raises(self, service, daily_dates, trend_values):
        """Test that a seasonal method without two seasons cannot train."""
        with pytest.raises(InsufficientDataError):
            service.train_model(
                ForecastMethod.SEASONAL_NAIVE, daily_dates[:10], trend_values[:10], "daily"
            )


class TestTrainModels:
    """Tests for TrainingService.train_models."""

    def test_failures_are_recorded(self, service, daily_dates, trend_values):
        """Test that untrainable methods get a failed entry."""
        models = service.train_models(daily_dates[:10], trend_values[:10], "daily")

        assert set(models) == set(ALL_METHODS)
        assert models[ForecastMethod.SEASONAL_NAIVE].status == "failed"
        assert models[ForecastMethod.SEASONAL_NAIVE].error
        assert not models[ForecastMethod.HOLT_WINTERS].is_trained
        assert models[ForecastMethod.NAIVE].is_trained

    def test_method_parameters_take_precedence(self, service, daily_dates, trend_values):
        """Test that explicit per-method parameters beat defaults and tuning."""
        options = TrainingOptions(
            methods=(ForecastMethod.MOVING_AVERAGE,),
            enable_tuning=True,
            method_parameters={ForecastMethod.MOVING_AVERAGE: {"window": 2}},
        )

        models = service.train_models(daily_dates[:30], trend_values, "daily", options=options)

        assert models[ForecastMethod.MOVING_AVERAGE].parameters == {"window": 2}

    def test_tuning(self, service, daily_dates, trend_values):
        """Test that tuned parameters are used when tuning is enabled."""
        options = TrainingOptions(methods=(ForecastMethod.MOVING_AVERAGE,), enable_tuning=True)

        models = service.train_models(daily_dates[:30], trend_values, "daily", options=options)

        assert models[ForecastMethod.MOVING_AVERAGE].parameters == {"window": 3}


class TestRetrainModel:
    """Tests for TrainingService.retrain_model."""

    def test_keeps_identity(self, service, daily_dates, trend_values):
        """Test that id, version and parameters survive retraining."""
        model = service.train_model(
            ForecastMethod.MOVING_AVERAGE,
            daily_dates[:20],
            trend_values[:20],
            "daily",
            parameters={"window": 3},
        ).model_copy(update={"id": "abc123", "version": "2.0.0"})
        previous = TimeSeries(
            time_values=daily_dates[:20], values=trend_values[:20], frequency="daily"
        )

        retrained = service.retrain_model(
            model, daily_dates[20:30], trend_values[20:30], previous=previous
        )

        assert retrained.id == "abc123"
        assert retrained.version == "2.0.0"
        assert retrained.parameters == {"window": 3}
        assert retrained.timestamp >= model.timestamp


class TestExportImport:
    """Tests for export_model and import_model."""

    def test_export_is_json_compatible(self, service):
        """Test the exported fields and types."""
        model = TrainedModel(
            id="m1",
            method=ForecastMethod.EXPONENTIAL_SMOOTHING,
            parameters={"alpha": 0.3},
            metrics={"accuracy": 4.2},
            timestamp=datetime(2024, 1, 1, tzinfo=UTC),
        )

        exported = service.export_model(model)

        assert exported == {
            "id": "m1",
            "method": "exponential_smoothing",
            "parameters": {"alpha": 0.3},
            "metrics": {"accuracy": 4.2},
            "timestamp": "2024-01-01T00:00:00Z",
            "version": "1.0.0",
        }
        assert service.import_model(exported) == model

    def test_import_defaults(self, service):
        """Test that missing optional fields get defaults."""
        model = service.import_model({"method": "movingAverage"})

        assert model.method == ForecastMethod.MOVING_AVERAGE
        assert model.parameters == {}
        assert model.metrics == {}
        assert model.version == "1.0.0"
        assert model.timestamp is not None

    @pytest.mark.parametrize("data", [{}, {"method": ""}, {"method": "arima"}])
    def test_import_invalid_method(self, service, data):
        """Test that a missing or unknown method is rejected."""
        with pytest.raises(ValidationError, match="Invalid model data"):
            service.import_model(data)
