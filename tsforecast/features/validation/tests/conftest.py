"""Test fixtures for validation module."""

import pandas as pd
import pytest

from tsforecast.features.forecasting.schemas import TimeSeries


def _dates(n: int, start: str = "2024-01-01") -> list[str]:
    return pd.date_range(start, periods=n, freq="D").strftime("%Y-%m-%d").tolist()


@pytest.fixture
def make_series():
    """Factory for a daily TimeSeries: make_series(values, start)."""

    def _make(values: list[float], start: str = "2024-01-01") -> TimeSeries:
        return TimeSeries(time_values=_dates(len(values), start), values=values, frequency="daily")

    return _make


@pytest.fixture
def linear_values() -> list[float]:
    """40 points on y = i + 1."""
    return [float(i + 1) for i in range(40)]


@pytest.fixture
def linear_dates() -> list[str]:
    """40 daily timestamps starting 2024-01-01."""
    return _dates(40)


@pytest.fixture
def make_dates():
    """Factory for consecutive daily timestamps: make_dates(n, start)."""
    return _dates
