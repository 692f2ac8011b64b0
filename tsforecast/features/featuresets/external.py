"""Optional external feature sources.

Sources:
- weather: synthetic seasonal temperature and precipitation
- holidays: fixed-date holiday flags plus the days either side
- economic: synthetic quarterly GDP growth and inflation
- custom_api: feature vectors fetched from a JSON endpoint with httpx

CRITICAL: Every source is optional and isolated. A source that fails is
logged and contributes no features; it never fails feature generation.
"""

from __future__ import annotations

from collections.abc import Sequence

import httpx
import numpy as np
import pandas as pd

from tsforecast.core.logging import get_logger
from tsforecast.features.featuresets.schemas import (
    CustomApiSourceConfig,
    ExternalFeatureConfig,
    Feature,
    FeatureType,
)

logger = get_logger(__name__)

WEATHER_SOURCE = "synthetic_weather_data"
HOLIDAY_SOURCE = "synthetic_holiday_data"
ECONOMIC_SOURCE = "synthetic_economic_data"
CUSTOM_API_SOURCE = "custom_api"

# (month, day): New Year, Christmas, Independence Day, Veterans Day
EXTERNAL_HOLIDAYS: frozenset[tuple[int, int]] = frozenset({(1, 1), (12, 25), (7, 4), (11, 11)})

# Economic indicators are redrawn once per quarter of observations
ECONOMIC_UPDATE_INTERVAL = 90

_SOURCE_ERRORS = (httpx.HTTPError, ValueError, KeyError, TypeError)


def _parse_dates(time_values: Sequence[str]) -> pd.DatetimeIndex:
    return pd.DatetimeIndex(pd.to_datetime(pd.Series(list(time_values)), format="mixed"))


def fetch_weather_features(dates: pd.DatetimeIndex, rng: np.random.Generator) -> list[Feature]:
    """Synthetic Northern-hemisphere weather.

    Formula:
        temperature = 15 + 10 * sin(((m + 3) mod 12) * pi / 6) + U(-2.5, 2.5)
        precipitation = max(0, 50 + 30 * sin(((m + 1) mod 12) * pi / 6) + U(-10, 10))
    with m the zero-based month.
    """
    n = len(dates)
    month = np.asarray(dates.month, dtype=np.float64) - 1
    temperature = 15 + 10 * np.sin(((month + 3) % 12) * np.pi / 6) + (rng.random(n) - 0.5) * 5
    precipitation = np.maximum(
        0.0, 50 + 30 * np.sin(((month + 1) % 12) * np.pi / 6) + (rng.random(n) - 0.5) * 20
    )
    return [
        Feature(
            name="temperature",
            values=temperature.tolist(),
            description="Average temperature (°C)",
            source=WEATHER_SOURCE,
        ),
        Feature(
            name="precipitation",
            values=precipitation.tolist(),
            description="Precipitation amount (mm)",
            source=WEATHER_SOURCE,
        ),
    ]


def fetch_holiday_features(dates: pd.DatetimeIndex) -> list[Feature]:
    """Holiday flags for each observation and its neighbours in the series."""
    flags = [1.0 if (d.month, d.day) in EXTERNAL_HOLIDAYS else 0.0 for d in dates]
    n = len(flags)
    before = [flags[i + 1] if i < n - 1 else 0.0 for i in range(n)]
    after = [flags[i - 1] if i > 0 else 0.0 for i in range(n)]
    return [
        Feature(
            name="is_holiday",
            type=FeatureType.BINARY,
            values=list(flags),
            description="Is a public holiday (1) or not (0)",
            source=HOLIDAY_SOURCE,
        ),
        Feature(
            name="is_before_holiday",
            type=FeatureType.BINARY,
            values=before,
            description="Is day before a public holiday (1) or not (0)",
            source=HOLIDAY_SOURCE,
        ),
        Feature(
            name="is_after_holiday",
            type=FeatureType.BINARY,
            values=after,
            description="Is day after a public holiday (1) or not (0)",
            source=HOLIDAY_SOURCE,
        ),
    ]


def fetch_economic_features(n: int, rng: np.random.Generator) -> list[Feature]:
    """Synthetic GDP random walk (~2% annual growth) and noisy 2% inflation."""
    gdp = 100.0
    inflation = 2.0
    gdp_growth: list[float | None] = []
    inflation_rate: list[float | None] = []
    for i in range(n):
        if i % ECONOMIC_UPDATE_INTERVAL == 0:
            gdp *= 1 + (0.005 + (rng.random() - 0.5) * 0.003)
            inflation = 2.0 + (rng.random() - 0.5) * 1.0
        gdp_growth.append(gdp / 100 - 1)
        inflation_rate.append(inflation)
    return [
        Feature(
            name="gdp_growth",
            values=gdp_growth,
            description="GDP growth rate (%)",
            source=ECONOMIC_SOURCE,
        ),
        Feature(
            name="inflation_rate",
            values=inflation_rate,
            description="Inflation rate (%)",
            source=ECONOMIC_SOURCE,
        ),
    ]


def fetch_custom_api_features(
    time_values: Sequence[str],
    frequency: str,
    config: CustomApiSourceConfig,
    client: httpx.Client | None = None,
) -> list[Feature]:
    """Fetch feature vectors from a JSON endpoint.

    Args:
        time_values: Observed timestamps (first and last are sent as the range).
        frequency: Series frequency.
        config: Endpoint configuration.
        client: HTTP client to use (a short-lived one is created when None).

    Returns:
        Features returned by the endpoint.

    Raises:
        ValueError: If no URL is configured or a vector is misaligned.
        httpx.HTTPError: On transport or HTTP status errors.
    """
    if not config.url:
        raise ValueError("custom_api.url is required when the source is enabled")

    params = {
        "start": time_values[0],
        "end": time_values[-1],
        "frequency": frequency,
        **config.params,
    }
    if client is not None:
        response = client.get(config.url, params=params, headers=config.headers)
    else:
        with httpx.Client(timeout=httpx.Timeout(config.timeout_seconds)) as http:
            response = http.get(config.url, params=params, headers=config.headers)
    response.raise_for_status()
    payload = response.json()

    features: list[Feature] = []
    for item in payload["features"]:
        feature = Feature(
            name=item["name"],
            type=item.get("type", FeatureType.NUMERICAL),
            values=item["values"],
            description=item.get("description", ""),
            source=item.get("source", CUSTOM_API_SOURCE),
        )
        if len(feature) != len(time_values):
            raise ValueError(
                f"Feature {feature.name} has {len(feature)} values, expected {len(time_values)}"
            )
        features.append(feature)
    return features


def fetch_external_features(
    time_values: Sequence[str],
    frequency: str,
    config: ExternalFeatureConfig,
    client: httpx.Client | None = None,
) -> list[Feature]:
    """Collect features from every enabled external source.

    Args:
        time_values: Observed timestamps.
        frequency: Series frequency.
        config: Source toggles and seed.
        client: HTTP client for the custom API source.

    Returns:
        Concatenated features of the sources that succeeded.
    """
    if not time_values or not config.get_enabled_sources():
        return []

    try:
        dates = _parse_dates(time_values)
    except (ValueError, TypeError) as e:
        logger.warning("featuresets.external_dates_invalid", error=str(e))
        return []

    rng = np.random.default_rng(config.seed)
    features: list[Feature] = []

    for source in config.get_enabled_sources():
        try:
            match source:
                case "weather":
                    fetched = fetch_weather_features(dates, rng)
                case "holidays":
                    fetched = fetch_holiday_features(dates)
                case "economic":
                    fetched = fetch_economic_features(len(dates), rng)
                case _:
                    fetched = fetch_custom_api_features(
                        time_values, frequency, config.custom_api, client=client
                    )
        except _SOURCE_ERRORS as e:
            logger.warning(
                "featuresets.external_source_failed",
                source=source,
                error=str(e),
                error_type=type(e).__name__,
            )
            continue
        logger.info("featuresets.external_source_fetched", source=source, count=len(fetched))
        features.extend(fetched)

    return features
