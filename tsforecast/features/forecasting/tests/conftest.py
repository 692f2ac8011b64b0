"""Test fixtures for forecasting module."""

import numpy as np
import pandas as pd
import pytest


def _make_dates(n: int, start: str = "2024-01-01", freq: str = "D") -> list[str]:
    """Consecutive YYYY-MM-DD timestamps."""
    return pd.date_range(start, periods=n, freq=freq).strftime("%Y-%m-%d").tolist()


@pytest.fixture
def linear_series() -> list[float]:
    """30 points on the line y = i + 1 (1, 2, ..., 30)."""
    return [float(i + 1) for i in range(30)]


@pytest.fixture
def seasonal_series() -> list[float]:
    """28 days (4 weeks) with the weekly pattern [10, 20, ..., 70]."""
    return [10.0, 20.0, 30.0, 40.0, 50.0, 60.0, 70.0] * 4


@pytest.fixture
def noisy_series() -> list[float]:
    """30 points oscillating around 10 with a 3-step cycle."""
    return [10.0 + (i % 3) for i in range(30)]


@pytest.fixture
def daily_dates() -> list[str]:
    """30 daily timestamps starting 2024-01-01."""
    return _make_dates(30)


@pytest.fixture
def sine_series() -> np.ndarray:
    """48 points of a sine wave with period 12."""
    return 100.0 + 10.0 * np.sin(2 * np.pi * np.arange(48) / 12)


@pytest.fixture
def make_dates():
    """Factory for consecutive timestamps: make_dates(n, start, freq)."""
    return _make_dates
