"""Test fixtures for featuresets module."""

import pandas as pd
import pytest


@pytest.fixture
def daily_dates() -> list[str]:
    """30 daily timestamps starting Monday 2024-01-01."""
    return pd.date_range("2024-01-01", periods=30, freq="D").strftime("%Y-%m-%d").tolist()


@pytest.fixture
def sequential_values() -> list[float]:
    """Sequential values (1, 2, ..., 30) so any leakage is detectable."""
    return [float(i) for i in range(1, 31)]
