"""Frequency-aware time helpers: horizons, future dates, frequency detection."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

import pandas as pd

from tsforecast.features.forecasting.schemas import Frequency

DATE_FORMAT = "%Y-%m-%d"

DEFAULT_HORIZONS: dict[Frequency, int] = {
    Frequency.DAILY: 7,  # one week ahead
    Frequency.WEEKLY: 4,  # one month ahead
    Frequency.MONTHLY: 6,
    Frequency.QUARTERLY: 4,  # one year ahead
    Frequency.YEARLY: 3,
}
FALLBACK_HORIZON = 5


def default_horizon(frequency: Frequency | str | None) -> int:
    """Default number of periods to forecast for a frequency."""
    return DEFAULT_HORIZONS.get(Frequency.parse(frequency), FALLBACK_HORIZON)


def _day_gaps(time_values: Sequence[str]) -> list[int]:
    stamps = pd.to_datetime(pd.Series(list(time_values)), format="mixed")
    return [int(gap.days) for gap in stamps.diff().iloc[1:]]


def average_time_diff(time_values: Sequence[str]) -> int:
    """Average spacing between observations in whole days (at least 1).

    Args:
        time_values: Chronological timestamps.

    Returns:
        Rounded mean gap in days; 1 when fewer than two timestamps.
    """
    if len(time_values) < 2:
        return 1
    gaps = _day_gaps(time_values)
    return max(1, round(sum(gaps) / len(gaps)))


def generate_future_dates(
    last_time_value: str,
    frequency: Frequency | str | None,
    horizon: int,
    time_values: Sequence[str] = (),
) -> list[str]:
    """Timestamps of the next ``horizon`` periods, formatted YYYY-MM-DD.

    Calendar frequencies step by day, week, month, quarter or year. Month
    arithmetic clips to the end of shorter months. Irregular series step by
    the average observed gap.

    Args:
        last_time_value: Last observed timestamp.
        frequency: Series frequency.
        horizon: Number of future periods.
        time_values: Observed timestamps, used for irregular spacing.

    Returns:
        List of future dates.
    """
    last = pd.Timestamp(last_time_value)
    freq = Frequency.parse(frequency)
    avg_gap = average_time_diff(time_values) if freq == Frequency.IRREGULAR else 1

    dates: list[str] = []
    for i in range(1, horizon + 1):
        match freq:
            case Frequency.DAILY:
                offset = pd.DateOffset(days=i)
            case Frequency.WEEKLY:
                offset = pd.DateOffset(weeks=i)
            case Frequency.MONTHLY:
                offset = pd.DateOffset(months=i)
            case Frequency.QUARTERLY:
                offset = pd.DateOffset(months=3 * i)
            case Frequency.YEARLY:
                offset = pd.DateOffset(years=i)
            case _:
                offset = pd.DateOffset(days=i * avg_gap)
        dates.append((last + offset).strftime(DATE_FORMAT))
    return dates


def detect_frequency(time_values: Sequence[str]) -> Frequency:
    """Infer the sampling frequency from the most common gap between timestamps.

    Gap ranges (days): <=3 daily, 6-8 weekly, 28-31 monthly, 89-92 quarterly,
    364-366 yearly, anything else irregular.

    Args:
        time_values: Chronological timestamps.

    Returns:
        Detected frequency (IRREGULAR for fewer than two timestamps).
    """
    if len(time_values) < 2:
        return Frequency.IRREGULAR

    most_common_gap, _ = Counter(_day_gaps(time_values)).most_common(1)[0]

    if most_common_gap <= 3:
        return Frequency.DAILY
    if 6 <= most_common_gap <= 8:
        return Frequency.WEEKLY
    if 28 <= most_common_gap <= 31:
        return Frequency.MONTHLY
    if 89 <= most_common_gap <= 92:
        return Frequency.QUARTERLY
    if 364 <= most_common_gap <= 366:
        return Frequency.YEARLY
    return Frequency.IRREGULAR
