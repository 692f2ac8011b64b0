"""Typed key-value storage for the model registry.

Provides an abstract interface and a local filesystem implementation that
persists registry records as pretty-printed JSON documents.

CRITICAL: All paths are validated to prevent directory traversal attacks.
Model ids, versions and tags must each resolve to a single path component
inside their parent directory.
"""

from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TypeVar

import pydantic
from pydantic import BaseModel

from tsforecast.core.logging import get_logger
from tsforecast.features.forecasting.schemas import TimeSeries
from tsforecast.features.registry.schemas import ModelMetadata, ModelRecord, TagRecord

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

MODEL_FILE = "model.json"
METADATA_FILE = "metadata.json"
VERSIONS_DIR = "versions"
TAGS_DIR = "tags"
DATA_DIR = "data"
TRAINING_DATA_FILE = "training_data.json"


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class PathTraversalError(StorageError):
    """A key resolved outside its storage directory."""

    pass


class AbstractModelStore(ABC):
    """Abstract typed store for registry records.

    Lookups of missing keys return None (or an empty list); only genuine I/O
    failures raise. This allows non-filesystem stores to be swapped in.
    """

    @abstractmethod
    def exists(self, model_id: str) -> bool:
        """Check whether a model has any stored state."""

    # Models -------------------------------------------------------------

    @abstractmethod
    def put(self, record: ModelRecord) -> None:
        """Store the current model under ``record.id``."""

    @abstractmethod
    def get(self, model_id: str) -> ModelRecord | None:
        """Load the current model."""

    @abstractmethod
    def delete(self, model_id: str) -> bool:
        """Delete a model with all versions, tags, metadata and data.

        Returns:
            True if deleted, False if not found.
        """

    @abstractmethod
    def list_ids(self) -> list[str]:
        """Ids of all models that have a current record."""

    # Versions -----------------------------------------------------------

    @abstractmethod
    def put_version(self, model_id: str, record: ModelRecord) -> None:
        """Archive ``record`` under its version."""

    @abstractmethod
    def get_version(self, model_id: str, version: str) -> ModelRecord | None:
        """Load an archived version."""

    @abstractmethod
    def list_versions(self, model_id: str) -> list[ModelRecord]:
        """All archived versions (unordered)."""

    # Tags ---------------------------------------------------------------

    @abstractmethod
    def put_tag(self, model_id: str, tag: TagRecord) -> None:
        """Store a named version pointer."""

    @abstractmethod
    def get_tag(self, model_id: str, tag: str) -> TagRecord | None:
        """Load a named version pointer."""

    @abstractmethod
    def list_tags(self, model_id: str) -> list[TagRecord]:
        """All version pointers of a model."""

    # Metadata and training data -----------------------------------------

    @abstractmethod
    def put_metadata(self, model_id: str, metadata: ModelMetadata) -> None:
        """Store model metadata."""

    @abstractmethod
    def get_metadata(self, model_id: str) -> ModelMetadata | None:
        """Load model metadata."""

    @abstractmethod
    def put_data(self, model_id: str, data: TimeSeries) -> None:
        """Store the series a model was trained on."""

    @abstractmethod
    def get_data(self, model_id: str) -> TimeSeries | None:
        """Load the series a model was trained on."""


class LocalFSModelStore(AbstractModelStore):
    """Local filesystem store.

    CRITICAL: Default store for development and single-node deployments.
    Writes are not locked; the last writer wins.
    """

    def __init__(self, root_dir: Path | str) -> None:
        """Initialize with root directory.

        Args:
            root_dir: Root directory holding one sub-directory per model.
        """
        self.root_dir = Path(root_dir).resolve()
        self.root_dir.mkdir(parents=True, exist_ok=True)

    def _resolve_path(self, parent: Path, name: str) -> Path:
        """Resolve ``name`` as a direct child of ``parent``.

        CRITICAL: Validates the path stays within its parent directory.

        Raises:
            PathTraversalError: If the key escapes ``parent`` or is empty.
        """
        full_path = (parent / name).resolve()
        if not name or full_path.parent != parent.resolve():
            logger.warning(
                "registry.path_traversal_attempt",
                key=name,
                root_dir=str(self.root_dir),
            )
            raise PathTraversalError(f"Path traversal attempt: {name!r}")
        return full_path

    def _model_dir(self, model_id: str) -> Path:
        return self._resolve_path(self.root_dir, model_id)

    def _write(self, path: Path, record: BaseModel) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(record.model_dump_json(indent=2), encoding="utf-8")

    def _read(self, path: Path, model: type[RecordT]) -> RecordT | None:
        if not path.is_file():
            return None
        return model.model_validate_json(path.read_text(encoding="utf-8"))

    def _read_all(self, directory: Path, model: type[RecordT]) -> list[RecordT]:
        if not directory.is_dir():
            return []
        records: list[RecordT] = []
        for path in sorted(directory.glob("*.json")):
            try:
                records.append(model.model_validate_json(path.read_text(encoding="utf-8")))
            except pydantic.ValidationError as e:
                logger.warning("registry.invalid_file_skipped", path=str(path), error=str(e))
        return records

    def exists(self, model_id: str) -> bool:
        return self._model_dir(model_id).is_dir()

    def put(self, record: ModelRecord) -> None:
        self._write(self._model_dir(record.id) / MODEL_FILE, record)

    def get(self, model_id: str) -> ModelRecord | None:
        return self._read(self._model_dir(model_id) / MODEL_FILE, ModelRecord)

    def delete(self, model_id: str) -> bool:
        model_dir = self._model_dir(model_id)
        if not model_dir.is_dir():
            return False
        shutil.rmtree(model_dir)
        return True

    def list_ids(self) -> list[str]:
        return sorted(
            path.name
            for path in self.root_dir.iterdir()
            if path.is_dir() and (path / MODEL_FILE).is_file()
        )

    def put_version(self, model_id: str, record: ModelRecord) -> None:
        versions_dir = self._model_dir(model_id) / VERSIONS_DIR
        self._write(self._resolve_path(versions_dir, f"{record.version}.json"), record)

    def get_version(self, model_id: str, version: str) -> ModelRecord | None:
        versions_dir = self._model_dir(model_id) / VERSIONS_DIR
        return self._read(self._resolve_path(versions_dir, f"{version}.json"), ModelRecord)

    def list_versions(self, model_id: str) -> list[ModelRecord]:
        return self._read_all(self._model_dir(model_id) / VERSIONS_DIR, ModelRecord)

    def put_tag(self, model_id: str, tag: TagRecord) -> None:
        tags_dir = self._model_dir(model_id) / TAGS_DIR
        self._write(self._resolve_path(tags_dir, f"{tag.tag}.json"), tag)

    def get_tag(self, model_id: str, tag: str) -> TagRecord | None:
        tags_dir = self._model_dir(model_id) / TAGS_DIR
        return self._read(self._resolve_path(tags_dir, f"{tag}.json"), TagRecord)

    def list_tags(self, model_id: str) -> list[TagRecord]:
        return self._read_all(self._model_dir(model_id) / TAGS_DIR, TagRecord)

    def put_metadata(self, model_id: str, metadata: ModelMetadata) -> None:
        self._write(self._model_dir(model_id) / METADATA_FILE, metadata)

    def get_metadata(self, model_id: str) -> ModelMetadata | None:
        return self._read(self._model_dir(model_id) / METADATA_FILE, ModelMetadata)

    def put_data(self, model_id: str, data: TimeSeries) -> None:
        self._write(self._model_dir(model_id) / DATA_DIR / TRAINING_DATA_FILE, data)

    def get_data(self, model_id: str) -> TimeSeries | None:
        return self._read(self._model_dir(model_id) / DATA_DIR / TRAINING_DATA_FILE, TimeSeries)
