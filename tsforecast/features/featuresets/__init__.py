"""Feature engineering for univariate time series."""

from tsforecast.features.featuresets.external import fetch_external_features
from tsforecast.features.featuresets.schemas import (
    CustomApiSourceConfig,
    EconomicSourceConfig,
    ExternalFeatureConfig,
    Feature,
    FeatureConfig,
    FeatureType,
    HolidaySourceConfig,
    WeatherSourceConfig,
)
from tsforecast.features.featuresets.service import (
    FeatureComputationResult,
    FeatureEngineeringService,
    extract_time_features,
    generate_lag_features,
    generate_statistical_features,
    generate_transform_features,
)

__all__ = [
    "CustomApiSourceConfig",
    "EconomicSourceConfig",
    "ExternalFeatureConfig",
    "Feature",
    "FeatureComputationResult",
    "FeatureConfig",
    "FeatureEngineeringService",
    "FeatureType",
    "HolidaySourceConfig",
    "WeatherSourceConfig",
    "extract_time_features",
    "fetch_external_features",
    "generate_lag_features",
    "generate_statistical_features",
    "generate_transform_features",
]
