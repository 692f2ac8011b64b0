"""Pydantic schemas for the model registry.

On-disk layout under the storage root:

    <model_id>/model.json                current model (ModelRecord)
    <model_id>/versions/<version>.json   archived versions (ModelRecord)
    <model_id>/tags/<tag>.json           named version pointers (TagRecord)
    <model_id>/metadata.json             ownership and deployments (ModelMetadata)
    <model_id>/data/training_data.json   training series (TimeSeries)
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from tsforecast.core.config import Settings, get_settings
from tsforecast.features.forecasting.schemas import ForecastMethod
from tsforecast.features.training.schemas import TrainedModel


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RegistryConfig(BaseModel):
    """Registry configuration passed explicitly to the registry.

    Attributes:
        storage_root: Directory holding one sub-directory per model.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    storage_root: Path

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> RegistryConfig:
        """Build the config from engine settings."""
        settings = settings or get_settings()
        return cls(storage_root=Path(settings.registry_storage_root))


class RollbackInfo(BaseModel):
    """Where a rolled-back model came from."""

    rollback_from: str | None = None
    rollback_to: str
    rollback_time: datetime = Field(default_factory=_utcnow)


class ModelRecord(TrainedModel):
    """A model as persisted by the registry (id and timestamp always set)."""

    id: str  # type: ignore[assignment]
    timestamp: datetime  # type: ignore[assignment]
    rollback_info: RollbackInfo | None = None


class VersionSummary(BaseModel):
    """One entry of a model's version history."""

    version: str
    timestamp: datetime | None = None
    method: ForecastMethod
    metrics: dict[str, float | None] = Field(default_factory=dict)


class TagRecord(BaseModel):
    """Named pointer to an archived version."""

    tag: str
    version: str
    timestamp: datetime = Field(default_factory=_utcnow)


class Deployment(BaseModel):
    """A deployment of a model.

    Unknown keys are kept so callers can attach their own deployment details.
    """

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    environment: str | None = None
    status: str = "active"
    timestamp: datetime = Field(default_factory=_utcnow)
    status_updated_at: datetime | None = None


class ModelMetadata(BaseModel):
    """Free-form metadata of a model.

    Unknown keys are kept; ``update_metadata`` merges them in.
    """

    model_config = ConfigDict(extra="allow")

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    tags: list[str] = Field(default_factory=list)
    description: str = ""
    owner: str = ""
    deployments: list[Deployment] = Field(default_factory=list)

    def merged(self, updates: dict[str, Any]) -> ModelMetadata:
        """Copy with ``updates`` applied and ``updated_at`` refreshed."""
        data = self.model_dump()
        data.update(updates)
        data["updated_at"] = _utcnow()
        return ModelMetadata.model_validate(data)
