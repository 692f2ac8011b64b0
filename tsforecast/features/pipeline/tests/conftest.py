"""Test fixtures for pipeline module."""

from pathlib import Path

import pandas as pd
import pytest

from tsforecast.features.pipeline.service import PipelineService
from tsforecast.features.registry.schemas import RegistryConfig
from tsforecast.features.registry.service import ModelRegistry


@pytest.fixture
def registry(tmp_path: Path) -> ModelRegistry:
    return ModelRegistry(RegistryConfig(storage_root=tmp_path / "models"))


@pytest.fixture
def pipeline(registry: ModelRegistry) -> PipelineService:
    return PipelineService(registry)


@pytest.fixture
def make_dates():
    """Factory for consecutive daily timestamps: make_dates(n, start)."""

    def _make(n: int, start: str = "2024-01-01") -> list[str]:
        return pd.date_range(start, periods=n, freq="D").strftime("%Y-%m-%d").tolist()

    return _make


@pytest.fixture
def weekly_values() -> list[float]:
    """60 days of a weekly pattern on a gentle upward trend."""
    pattern = [20.0, 22.0, 25.0, 24.0, 30.0, 40.0, 35.0]
    return [pattern[i % 7] + 0.2 * i for i in range(60)]
