"""Pipeline: feature generation through registration and forecasting."""

from tsforecast.features.pipeline.schemas import PipelineOptions, PipelineResult, RetrainResult
from tsforecast.features.pipeline.service import PipelineService, increment_version

__all__ = [
    "PipelineOptions",
    "PipelineResult",
    "PipelineService",
    "RetrainResult",
    "increment_version",
]
