"""Engine exception hierarchy.

Statistical edge cases (too few points, zero variance) are absorbed by
returning None or a fallback forecast. These exceptions are reserved for
structural misconfiguration and lookups the caller must handle.
"""

from typing import Any

# =============================================================================
# Exception Classes
# =============================================================================


class ForecastEngineError(Exception):
    """Base exception for tsforecast errors.

    All engine-specific exceptions inherit from this class so callers at the
    HTTP boundary can map them to a structured 400/500 response.
    """

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize engine error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    @property
    def title(self) -> str:
        """Short summary of the problem type."""
        return self.code.replace("_", " ").title()

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for JSON responses."""
        return {
            "code": self.code,
            "title": self.title,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(ForecastEngineError):
    """Invalid configuration.

    Use when split ratios, metric names, version strings or similar
    configuration values are malformed.
    """

    def __init__(
        self,
        message: str = "Validation failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="VALIDATION_ERROR", details=details)


class InsufficientDataError(ForecastEngineError):
    """An explicit precondition on series length was violated.

    Use when the caller asked for something the data cannot support, e.g. more
    cross-validation folds than the series allows.
    """

    def __init__(
        self,
        message: str = "Insufficient data",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="INSUFFICIENT_DATA", details=details)


class ModelSelectionError(ForecastEngineError):
    """No candidate model produced usable metrics."""

    def __init__(
        self,
        message: str = "No valid models to select from",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="MODEL_SELECTION_ERROR", details=details)


class NotFoundError(ForecastEngineError):
    """Requested model does not exist in the registry."""

    def __init__(
        self,
        message: str = "Model not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, code="NOT_FOUND", details=details)
