"""Tests for the engine exception hierarchy."""

import pytest

from tsforecast.core.exceptions import (
    ForecastEngineError,
    InsufficientDataError,
    ModelSelectionError,
    NotFoundError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("exc_type", "code", "message"),
    [
        (ValidationError, "VALIDATION_ERROR", "Validation failed"),
        (InsufficientDataError, "INSUFFICIENT_DATA", "Insufficient data"),
        (ModelSelectionError, "MODEL_SELECTION_ERROR", "No valid models to select from"),
        (NotFoundError, "NOT_FOUND", "Model not found"),
    ],
)
def test_default_codes_and_messages(exc_type, code, message):
    """Each error carries its code and a default message."""
    error = exc_type()

    assert isinstance(error, ForecastEngineError)
    assert error.code == code
    assert str(error) == message
    assert error.details == {}


def test_to_dict():
    """to_dict should expose code, title, message and details."""
    error = NotFoundError("Model abc not found", details={"model_id": "abc"})

    assert error.to_dict() == {
        "code": "NOT_FOUND",
        "title": "Not Found",
        "message": "Model abc not found",
        "details": {"model_id": "abc"},
    }
