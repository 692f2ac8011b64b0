"""Model registry: persistence, versioning, tagging and metadata.

Orchestrates:
- Registering, updating, listing and deleting models
- Archiving versions, tagging them and rolling back
- Metadata, tags and deployment records per model
- Training data lineage

Every operation is a coroutine; blocking file I/O runs in a worker thread.
Missing models, versions and tags yield None or False; I/O errors propagate.
"""

from __future__ import annotations

import asyncio
import hashlib
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from tsforecast.core.logging import get_logger
from tsforecast.features.forecasting.schemas import TimeSeries
from tsforecast.features.registry.schemas import (
    Deployment,
    ModelMetadata,
    ModelRecord,
    RegistryConfig,
    RollbackInfo,
    TagRecord,
    VersionSummary,
)
from tsforecast.features.registry.storage import AbstractModelStore, LocalFSModelStore
from tsforecast.features.training.schemas import TrainedModel

logger = get_logger(__name__)


def generate_model_id(method: str, timestamp: datetime) -> str:
    """First 10 hex characters of MD5(method + "_" + ISO timestamp)."""
    digest = hashlib.md5(f"{method}_{timestamp.isoformat()}".encode(), usedforsecurity=False)
    return digest.hexdigest()[:10]


def matches_filters(document: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
    """Check dotted-path equality filters against a JSON document.

    Example:
        >>> matches_filters({"metrics": {"mape": 4.2}}, {"metrics.mape": 4.2})
        True
    """
    for key, expected in filters.items():
        value: Any = document
        for part in key.split("."):
            if not isinstance(value, Mapping) or part not in value:
                return False
            value = value[part]
        if value != expected:
            return False
    return True


class ModelRegistry:
    """Async facade over a model store.

    Example:
        >>> registry = ModelRegistry(RegistryConfig(storage_root=Path("./models")))
        >>> model_id = await registry.register(trained_model)
        >>> await registry.tag_version(model_id, "1.0.0", "production")
    """

    def __init__(
        self,
        config: RegistryConfig,
        store: AbstractModelStore | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            config: Registry configuration.
            store: Storage backend (local filesystem under ``config.storage_root``
                when None).
        """
        self.config = config
        self.store = store or LocalFSModelStore(config.storage_root)

    # =========================================================================
    # Models
    # =========================================================================

    def _register(self, model: TrainedModel) -> str:
        timestamp = model.timestamp or datetime.now(UTC)
        model_id = model.id or generate_model_id(model.method.value, timestamp)
        record = ModelRecord.model_validate(
            {**model.model_dump(), "id": model_id, "timestamp": timestamp}
        )
        self.store.put(record)
        logger.info(
            "registry.model_registered",
            model_id=model_id,
            method=record.method.value,
            version=record.version,
        )
        return model_id

    async def register(self, model: TrainedModel) -> str:
        """Persist a model, assigning an id when it has none.

        Returns:
            The model id.
        """
        return await asyncio.to_thread(self._register, model)

    async def get(self, model_id: str) -> ModelRecord | None:
        """Current record of a model."""
        return await asyncio.to_thread(self.store.get, model_id)

    def _update(self, model_id: str, model: TrainedModel) -> bool:
        existing = self.store.get(model_id)
        if existing is None:
            logger.warning("registry.update_missing_model", model_id=model_id)
            return False

        self.store.put_version(model_id, existing)
        record = ModelRecord.model_validate(
            {**model.model_dump(), "id": model_id, "timestamp": datetime.now(UTC)}
        )
        self.store.put(record)
        logger.info(
            "registry.model_updated",
            model_id=model_id,
            archived_version=existing.version,
            version=record.version,
        )
        return True

    async def update(self, model_id: str, model: TrainedModel) -> bool:
        """Replace a model, archiving the current record under its version.

        Returns:
            False if the model does not exist.
        """
        return await asyncio.to_thread(self._update, model_id, model)

    async def delete(self, model_id: str) -> bool:
        """Delete a model and everything stored for it."""
        deleted = await asyncio.to_thread(self.store.delete, model_id)
        if deleted:
            logger.info("registry.model_deleted", model_id=model_id)
        return deleted

    def _list_models(self, filters: Mapping[str, Any]) -> list[ModelRecord]:
        records: list[ModelRecord] = []
        for model_id in self.store.list_ids():
            record = self.store.get(model_id)
            if record is None:
                continue
            if matches_filters(record.model_dump(mode="json"), filters):
                records.append(record)
        return records

    async def list_models(self, filters: Mapping[str, Any] | None = None) -> list[ModelRecord]:
        """All models matching dotted-path equality filters.

        Filter values are compared against the JSON form of each record,
        e.g. ``{"method": "holt_winters", "metrics.mape": 4.2}``.
        """
        return await asyncio.to_thread(self._list_models, filters or {})

    def _save_data(self, model_id: str, data: TimeSeries) -> bool:
        if not self.store.exists(model_id):
            return False
        self.store.put_data(model_id, data)
        return True

    async def save_model_data(self, model_id: str, data: TimeSeries) -> bool:
        """Store the series a model was trained on."""
        return await asyncio.to_thread(self._save_data, model_id, data)

    async def get_model_data(self, model_id: str) -> TimeSeries | None:
        """Series a model was trained on."""
        return await asyncio.to_thread(self.store.get_data, model_id)

    # =========================================================================
    # Versions and tags
    # =========================================================================

    def _versions(self, model_id: str) -> list[VersionSummary]:
        summaries = [
            VersionSummary(
                version=record.version,
                timestamp=record.timestamp,
                method=record.method,
                metrics=record.metrics,
            )
            for record in self.store.list_versions(model_id)
        ]
        oldest = datetime.min.replace(tzinfo=UTC)
        summaries.sort(key=lambda s: _aware(s.timestamp) or oldest, reverse=True)
        return summaries

    async def get_versions(self, model_id: str) -> list[VersionSummary]:
        """Version history, newest first."""
        return await asyncio.to_thread(self._versions, model_id)

    async def get_version(self, model_id: str, version: str) -> ModelRecord | None:
        """An archived version."""
        return await asyncio.to_thread(self.store.get_version, model_id, version)

    def _create_version(self, model_id: str, model: TrainedModel, version: str) -> bool:
        if not self.store.exists(model_id):
            return False
        if self.store.get_version(model_id, version) is not None:
            logger.warning("registry.version_exists", model_id=model_id, version=version)
            return False
        record = ModelRecord.model_validate(
            {
                **model.model_dump(),
                "id": model_id,
                "version": version,
                "timestamp": model.timestamp or datetime.now(UTC),
            }
        )
        self.store.put_version(model_id, record)
        logger.info("registry.version_created", model_id=model_id, version=version)
        return True

    async def create_version(self, model_id: str, model: TrainedModel, version: str) -> bool:
        """Archive ``model`` as ``version``; refuses to overwrite an existing version."""
        return await asyncio.to_thread(self._create_version, model_id, model, version)

    def _tag_version(self, model_id: str, version: str, tag: str) -> bool:
        if self.store.get_version(model_id, version) is None:
            logger.warning("registry.tag_missing_version", model_id=model_id, version=version)
            return False
        self.store.put_tag(model_id, TagRecord(tag=tag, version=version))
        logger.info("registry.version_tagged", model_id=model_id, version=version, tag=tag)
        return True

    async def tag_version(self, model_id: str, version: str, tag: str) -> bool:
        """Point ``tag`` at an archived version (moves an existing tag)."""
        return await asyncio.to_thread(self._tag_version, model_id, version, tag)

    async def get_tags(self, model_id: str) -> list[TagRecord]:
        """All version tags of a model."""
        return await asyncio.to_thread(self.store.list_tags, model_id)

    def _get_by_tag(self, model_id: str, tag: str) -> ModelRecord | None:
        record = self.store.get_tag(model_id, tag)
        if record is None:
            return None
        return self.store.get_version(model_id, record.version)

    async def get_model_by_tag(self, model_id: str, tag: str) -> ModelRecord | None:
        """The archived version a tag points to."""
        return await asyncio.to_thread(self._get_by_tag, model_id, tag)

    def _rollback(self, model_id: str, version: str) -> bool:
        target = self.store.get_version(model_id, version)
        if target is None:
            logger.warning("registry.rollback_missing_version", model_id=model_id, version=version)
            return False
        current = self.store.get(model_id)
        if current is None:
            return False

        self.store.put_version(model_id, current)
        now = datetime.now(UTC)
        self.store.put(
            target.model_copy(
                update={
                    "timestamp": now,
                    "rollback_info": RollbackInfo(
                        rollback_from=current.version, rollback_to=version, rollback_time=now
                    ),
                }
            )
        )
        logger.info(
            "registry.model_rolled_back",
            model_id=model_id,
            from_version=current.version,
            to_version=version,
        )
        return True

    async def rollback(self, model_id: str, version: str) -> bool:
        """Promote an archived version to current, archiving the current record."""
        return await asyncio.to_thread(self._rollback, model_id, version)

    # =========================================================================
    # Metadata
    # =========================================================================

    def _metadata(self, model_id: str) -> ModelMetadata:
        metadata = self.store.get_metadata(model_id)
        if metadata is None:
            metadata = ModelMetadata()
            self.store.put_metadata(model_id, metadata)
        return metadata

    def _get_metadata(self, model_id: str) -> ModelMetadata | None:
        if not self.store.exists(model_id):
            return None
        return self._metadata(model_id)

    async def get_metadata(self, model_id: str) -> ModelMetadata | None:
        """Model metadata; an empty document is created on first access.

        Returns:
            None if the model does not exist.
        """
        return await asyncio.to_thread(self._get_metadata, model_id)

    def _update_metadata(self, model_id: str, updates: Mapping[str, Any]) -> bool:
        if not self.store.exists(model_id):
            logger.warning("registry.metadata_missing_model", model_id=model_id)
            return False
        self.store.put_metadata(model_id, self._metadata(model_id).merged(dict(updates)))
        return True

    async def update_metadata(self, model_id: str, updates: Mapping[str, Any]) -> bool:
        """Merge ``updates`` into the metadata and refresh ``updated_at``."""
        return await asyncio.to_thread(self._update_metadata, model_id, updates)

    def _add_tag(self, model_id: str, tag: str) -> bool:
        if not self.store.exists(model_id):
            return False
        tags = self._metadata(model_id).tags
        if tag not in tags:
            tags = [*tags, tag]
        return self._update_metadata(model_id, {"tags": tags})

    async def add_tag(self, model_id: str, tag: str) -> bool:
        """Add a free-form tag to the metadata (no duplicates)."""
        return await asyncio.to_thread(self._add_tag, model_id, tag)

    def _remove_tag(self, model_id: str, tag: str) -> bool:
        if not self.store.exists(model_id):
            return False
        tags = [t for t in self._metadata(model_id).tags if t != tag]
        return self._update_metadata(model_id, {"tags": tags})

    async def remove_tag(self, model_id: str, tag: str) -> bool:
        """Remove a free-form tag from the metadata."""
        return await asyncio.to_thread(self._remove_tag, model_id, tag)

    def _add_deployment(self, model_id: str, deployment: Mapping[str, Any]) -> bool:
        if not self.store.exists(model_id):
            return False
        entry = Deployment.model_validate(
            {
                **deployment,
                "timestamp": datetime.now(UTC),
                "status": deployment.get("status") or "active",
            }
        )
        deployments = [*self._metadata(model_id).deployments, entry]
        return self._update_metadata(model_id, {"deployments": deployments})

    async def add_deployment(self, model_id: str, deployment: Mapping[str, Any]) -> bool:
        """Record a deployment (status defaults to "active")."""
        return await asyncio.to_thread(self._add_deployment, model_id, deployment)

    def _update_deployment_status(self, model_id: str, deployment_id: str, status: str) -> bool:
        if not self.store.exists(model_id):
            return False
        deployments = self._metadata(model_id).deployments
        for i, deployment in enumerate(deployments):
            if deployment.id == deployment_id:
                deployments[i] = deployment.model_copy(
                    update={"status": status, "status_updated_at": datetime.now(UTC)}
                )
                return self._update_metadata(model_id, {"deployments": deployments})
        logger.warning(
            "registry.deployment_not_found", model_id=model_id, deployment_id=deployment_id
        )
        return False

    async def update_deployment_status(
        self, model_id: str, deployment_id: str, status: str
    ) -> bool:
        """Change the status of a recorded deployment."""
        return await asyncio.to_thread(
            self._update_deployment_status, model_id, deployment_id, status
        )


def _aware(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
