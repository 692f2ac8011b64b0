"""Test fixtures for training module."""

import pandas as pd
import pytest


@pytest.fixture
def daily_dates() -> list[str]:
    """60 daily timestamps starting 2024-01-01."""
    return pd.date_range("2024-01-01", periods=60, freq="D").strftime("%Y-%m-%d").tolist()


@pytest.fixture
def trend_values() -> list[float]:
    """30 points on y = i + 1."""
    return [float(i + 1) for i in range(30)]


@pytest.fixture
def weekly_pattern() -> list[float]:
    """56 days (8 weeks) of a weekly pattern on a gentle trend."""
    pattern = [20.0, 22.0, 25.0, 24.0, 30.0, 40.0, 35.0]
    return [pattern[i % 7] + 0.1 * i for i in range(56)]
