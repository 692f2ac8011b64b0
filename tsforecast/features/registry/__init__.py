"""Model registry for persisting, versioning and tagging trained models."""

from tsforecast.features.registry.schemas import (
    Deployment,
    ModelMetadata,
    ModelRecord,
    RegistryConfig,
    RollbackInfo,
    TagRecord,
    VersionSummary,
)
from tsforecast.features.registry.service import (
    ModelRegistry,
    generate_model_id,
    matches_filters,
)
from tsforecast.features.registry.storage import (
    AbstractModelStore,
    LocalFSModelStore,
    PathTraversalError,
    StorageError,
)

__all__ = [
    "AbstractModelStore",
    "Deployment",
    "LocalFSModelStore",
    "ModelMetadata",
    "ModelRecord",
    "ModelRegistry",
    "PathTraversalError",
    "RegistryConfig",
    "RollbackInfo",
    "StorageError",
    "TagRecord",
    "VersionSummary",
    "generate_model_id",
    "matches_filters",
]
