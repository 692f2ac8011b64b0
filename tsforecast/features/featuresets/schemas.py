"""Pydantic schemas for feature engineering configuration and output.

Feature configs are designed to be:
- Immutable (frozen=True) for reproducibility
- Versioned (schema_version) for registry storage
- Hashable (config_hash) for deduplication
"""

from __future__ import annotations

import hashlib
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FeatureType(str, Enum):
    """Kind of values a feature carries."""

    NUMERICAL = "numerical"
    CATEGORICAL = "categorical"
    BINARY = "binary"


class Feature(BaseModel):
    """Named vector aligned 1:1 with a series.

    Leading entries are None where there is not enough history.

    Attributes:
        name: Feature name (e.g. lag_1, rolling_mean_5).
        type: Kind of values.
        values: One value per observation.
        description: Human-readable description.
        source: Origin of an external feature (None for derived features).
    """

    name: str
    type: FeatureType = FeatureType.NUMERICAL
    values: list[float | None]
    description: str = ""
    source: str | None = None

    def __len__(self) -> int:
        return len(self.values)


class FeatureConfigBase(BaseModel):
    """Base configuration with versioning support.

    All feature configs inherit from this base to ensure:
    - Immutability after creation (frozen=True)
    - No extra fields allowed (extra="forbid")
    - Schema versioning for reproducibility
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    schema_version: str = Field(
        default="1.0",
        description="Semantic version of this config schema",
        pattern=r"^\d+\.\d+(\.\d+)?$",
    )

    def config_hash(self) -> str:
        """Generate deterministic hash of configuration.

        Returns:
            16-character hex string hash of config JSON.
        """
        config_json = self.model_dump_json()
        return hashlib.sha256(config_json.encode()).hexdigest()[:16]


# =============================================================================
# External Sources
# =============================================================================


class WeatherSourceConfig(FeatureConfigBase):
    """Synthetic weather source (temperature, precipitation)."""

    enabled: bool = False


class HolidaySourceConfig(FeatureConfigBase):
    """Holiday calendar source (is_holiday, is_before_holiday, is_after_holiday)."""

    enabled: bool = False


class EconomicSourceConfig(FeatureConfigBase):
    """Synthetic economic indicators (gdp_growth, inflation_rate)."""

    enabled: bool = False


class CustomApiSourceConfig(FeatureConfigBase):
    """HTTP endpoint returning feature vectors as JSON.

    The endpoint receives ``start``, ``end`` and ``frequency`` query
    parameters (plus ``params``) and must answer with
    ``{"features": [{"name": ..., "values": [...]}, ...]}``.

    Attributes:
        enabled: Whether to query the endpoint.
        url: Endpoint URL.
        params: Extra query parameters.
        headers: Extra request headers.
        timeout_seconds: Request timeout.
    """

    enabled: bool = False
    url: str | None = None
    params: dict[str, str] = Field(default_factory=dict)
    headers: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float = Field(default=10.0, gt=0.0)


class ExternalFeatureConfig(FeatureConfigBase):
    """Toggles for the optional external feature sources.

    Each source is independent; a failing source contributes no features.

    Attributes:
        weather: Synthetic weather source.
        holidays: Holiday calendar source.
        economic: Synthetic economic source.
        custom_api: HTTP-backed source.
        seed: Seed for the synthetic sources (None = nondeterministic).
    """

    weather: WeatherSourceConfig = Field(default_factory=WeatherSourceConfig)
    holidays: HolidaySourceConfig = Field(default_factory=HolidaySourceConfig)
    economic: EconomicSourceConfig = Field(default_factory=EconomicSourceConfig)
    custom_api: CustomApiSourceConfig = Field(default_factory=CustomApiSourceConfig)
    seed: int | None = None

    def get_enabled_sources(self) -> list[str]:
        """Return list of enabled source names.

        Returns:
            List of enabled source names.
        """
        enabled: list[str] = []
        if self.weather.enabled:
            enabled.append("weather")
        if self.holidays.enabled:
            enabled.append("holidays")
        if self.economic.enabled:
            enabled.append("economic")
        if self.custom_api.enabled:
            enabled.append("custom_api")
        return enabled


# =============================================================================
# Feature Set
# =============================================================================


class FeatureConfig(FeatureConfigBase):
    """Complete feature engineering configuration.

    Attributes:
        max_lag: Largest lag to generate (settings default when unset).
        include_time: Calendar features from timestamps.
        include_lag: Lag, moving-average and difference features.
        include_statistical: Rolling, seasonal and expanding statistics.
        include_transform: Mathematical transforms of the values.
        external: External sources (None = disabled).
    """

    max_lag: int | None = Field(default=None, ge=1)
    include_time: bool = True
    include_lag: bool = True
    include_statistical: bool = True
    include_transform: bool = True
    external: ExternalFeatureConfig | None = None

    @field_validator("max_lag")
    @classmethod
    def validate_max_lag(cls, v: int | None) -> int | None:
        """Cap lags at a sensible bound."""
        if v is not None and v > 365:
            raise ValueError("max_lag must be at most 365")
        return v

    def get_enabled_features(self) -> list[str]:
        """Return list of enabled feature groups.

        Returns:
            List of enabled feature group names.
        """
        enabled: list[str] = []
        if self.include_time:
            enabled.append("time")
        if self.include_lag:
            enabled.append("lag")
        if self.include_statistical:
            enabled.append("statistical")
        if self.include_transform:
            enabled.append("transform")
        if self.external is not None:
            enabled.append("external")
        return enabled
