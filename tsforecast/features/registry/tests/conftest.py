"""Test fixtures for registry module."""

from datetime import UTC, datetime
from pathlib import Path

import pytest

from tsforecast.features.forecasting.schemas import ForecastMethod, TimeSeries
from tsforecast.features.registry.schemas import ModelRecord, RegistryConfig
from tsforecast.features.registry.service import ModelRegistry
from tsforecast.features.registry.storage import LocalFSModelStore
from tsforecast.features.training.schemas import TrainedModel


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Empty registry root inside the pytest temp directory."""
    return tmp_path / "registry"


@pytest.fixture
def store(storage_root: Path) -> LocalFSModelStore:
    return LocalFSModelStore(storage_root)


@pytest.fixture
def registry(storage_root: Path) -> ModelRegistry:
    return ModelRegistry(RegistryConfig(storage_root=storage_root))


@pytest.fixture
def trained_model() -> TrainedModel:
    """Trained Holt-Winters model without an id."""
    return TrainedModel(
        method=ForecastMethod.HOLT_WINTERS,
        parameters={"alpha": 0.3, "beta": 0.1, "gamma": 0.1, "seasonal_period": 7},
        metrics={"mape": 4.2, "rmse": 1.5},
        timestamp=datetime(2024, 3, 1, 12, 0, tzinfo=UTC),
    )


@pytest.fixture
def model_record(trained_model: TrainedModel) -> ModelRecord:
    """Persistable record with a fixed id."""
    return ModelRecord.model_validate({**trained_model.model_dump(), "id": "abc1234567"})


@pytest.fixture
def training_data() -> TimeSeries:
    return TimeSeries(
        time_values=["2024-01-01", "2024-01-02", "2024-01-03"],
        values=[1.0, 2.0, 3.0],
        frequency="daily",
    )
