"""Application configuration via Pydantic Settings v2."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "tsforecast"
    app_env: Literal["development", "testing", "staging", "production"] = "development"
    debug: bool = False

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Forecasting
    forecast_default_alpha: float = 0.3
    forecast_default_beta: float = 0.1
    forecast_default_gamma: float = 0.1
    forecast_default_confidence_level: float = 0.95
    forecast_min_points: int = 3

    # Feature Engineering
    feature_default_max_lag: int = 7

    # Validation
    validation_default_split_ratio: tuple[float, float, float] = (0.7, 0.15, 0.15)
    validation_default_num_folds: int = 5

    # Retraining
    retrain_drift_threshold: float = 0.2
    retrain_min_new_points: int = 5
    retrain_error_ratio: float = 1.5

    # Tuning
    tuning_primary_metric: Literal["mape", "rmse", "mae", "r2"] = "mape"

    # Registry
    registry_storage_root: str = "./models/timeseries"
    registry_default_version: str = "1.0.0"

    @field_validator("validation_default_split_ratio")
    @classmethod
    def validate_split_ratio(cls, v: tuple[float, float, float]) -> tuple[float, float, float]:
        """Validate that the train/validation/test ratios sum to one.

        Args:
            v: Split ratio triple.

        Returns:
            Validated split ratio.

        Raises:
            ValueError: If the ratios do not sum to 1.
        """
        if abs(sum(v) - 1.0) > 1e-4:
            raise ValueError(f"Split ratio must sum to 1, got {sum(v)}")
        return v

    @field_validator("forecast_default_confidence_level")
    @classmethod
    def validate_confidence_level(cls, v: float) -> float:
        """Validate confidence level lies strictly between 0 and 1."""
        if not 0.0 < v < 1.0:
            raise ValueError(f"Confidence level must be in (0, 1), got {v}")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.app_env == "testing"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
