"""Tests for logging configuration."""

from tsforecast.core.logging import (
    add_run_id,
    bind_run_id,
    configure_logging,
    get_logger,
    run_id_ctx,
)


def test_get_logger_returns_bound_logger():
    """get_logger should return a structlog logger."""
    configure_logging()
    logger = get_logger("test")

    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "warning")


def test_bind_run_id_sets_and_resets_context():
    """bind_run_id should expose the id inside the block only."""
    assert run_id_ctx.get() is None

    with bind_run_id("run-123") as run_id:
        assert run_id == "run-123"
        assert run_id_ctx.get() == "run-123"

    assert run_id_ctx.get() is None


def test_bind_run_id_generates_id():
    """bind_run_id should generate a 12-character id when none is given."""
    with bind_run_id() as run_id:
        assert len(run_id) == 12


def test_add_run_id_processor():
    """add_run_id should copy the context id into log events."""
    assert add_run_id(None, "info", {"event": "x"}) == {"event": "x"}

    with bind_run_id("run-456"):
        assert add_run_id(None, "info", {"event": "x"}) == {"event": "x", "run_id": "run-456"}
