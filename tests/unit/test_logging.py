"""Unit tests for the logging module."""

from __future__ import annotations

import logging

import pytest
import structlog

from pdf_annotator_jobs.observability import (
    LogLevel,
    bind_job_context,
    clear_job_context,
    clear_request_context,
    configure_logging,
    generate_request_id,
    get_logger,
    get_request_id,
    set_request_id,
)


# ---------------------------------------------------------------------------
# TestLogLevel
# ---------------------------------------------------------------------------


class TestLogLevel:
    """Tests for LogLevel enum."""

    def test_log_level_values(self) -> None:
        """Test LogLevel enum values."""
        assert LogLevel.DEBUG == "debug"
        assert LogLevel.INFO == "info"
        assert LogLevel.WARNING == "warning"
        assert LogLevel.ERROR == "error"
        assert LogLevel.CRITICAL == "critical"

    @pytest.mark.parametrize(
        ("level", "expected"),
        [
            (LogLevel.DEBUG, logging.DEBUG),
            (LogLevel.INFO, logging.INFO),
            (LogLevel.WARNING, logging.WARNING),
            (LogLevel.ERROR, logging.ERROR),
            (LogLevel.CRITICAL, logging.CRITICAL),
        ],
    )
    def test_to_stdlib_level(self, level: LogLevel, expected: int) -> None:
        """Test conversion to stdlib levels."""
        assert level.to_stdlib_level() == expected


# ---------------------------------------------------------------------------
# TestRequestId
# ---------------------------------------------------------------------------


class TestRequestId:
    """Tests for request ID management."""

    def setup_method(self) -> None:
        """Clear context before each test."""
        clear_request_context()

    def teardown_method(self) -> None:
        """Clear context after each test."""
        clear_request_context()

    def test_generate_request_id(self) -> None:
        """Test request IDs are 8 hex characters and unique."""
        ids = {generate_request_id() for _ in range(100)}

        assert len(ids) == 100
        for request_id in ids:
            assert len(request_id) == 8
            int(request_id, 16)

    def test_get_request_id_default(self) -> None:
        """Test get_request_id returns None when not set."""
        assert get_request_id() is None

    def test_set_request_id_generates_when_none(self) -> None:
        """Test set_request_id generates an ID when None is passed."""
        request_id = set_request_id(None)

        assert len(request_id) == 8
        assert get_request_id() == request_id

    def test_clear_request_context(self) -> None:
        """Test clearing request context."""
        set_request_id("test-456")
        clear_request_context()

        assert get_request_id() is None


# ---------------------------------------------------------------------------
# TestConfigureLogging
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def setup_method(self) -> None:
        """Reset structlog configuration before each test."""
        structlog.reset_defaults()

    def teardown_method(self) -> None:
        """Reset structlog configuration after each test."""
        structlog.reset_defaults()

    @pytest.mark.parametrize("level", ["debug", "DEBUG", "Warning", LogLevel.INFO])
    def test_accepts_levels(self, level: LogLevel | str) -> None:
        """Test enum and case-insensitive string levels are accepted."""
        configure_logging(level=level, force_colors=False)

    def test_configure_invalid_level_raises(self) -> None:
        """Test invalid log level raises ValueError."""
        with pytest.raises(ValueError, match="'invalid' is not a valid LogLevel"):
            configure_logging(level="invalid")


# ---------------------------------------------------------------------------
# TestLogOutput
# ---------------------------------------------------------------------------


class TestLogOutput:
    """Tests for logfmt output and context propagation."""

    def setup_method(self) -> None:
        """Reset before tests."""
        structlog.reset_defaults()
        clear_request_context()

    def teardown_method(self) -> None:
        """Reset configuration."""
        clear_request_context()
        structlog.reset_defaults()

    def test_logfmt_key_value_format(self, capfd: pytest.CaptureFixture[str]) -> None:
        """Test logfmt produces key=value pairs with level and timestamp."""
        configure_logging(level=LogLevel.DEBUG, force_colors=False)
        get_logger(__name__).info("test_event", foo="bar")

        err = capfd.readouterr().err
        assert "event=test_event" in err
        assert "foo=bar" in err
        assert "level=info" in err
        assert "Z" in err

    def test_level_filtering(self, capfd: pytest.CaptureFixture[str]) -> None:
        """Test messages below the configured level are dropped."""
        configure_logging(level=LogLevel.WARNING, force_colors=False)
        logger = get_logger(__name__)

        logger.info("info_message")
        logger.warning("warning_message")

        err = capfd.readouterr().err
        assert "info_message" not in err
        assert "warning_message" in err

    def test_request_id_included(self, capfd: pytest.CaptureFixture[str]) -> None:
        """Test the bound request ID appears on log lines."""
        configure_logging(level=LogLevel.DEBUG, force_colors=False)
        set_request_id("req-abc123")
        get_logger(__name__).info("test_event")

        assert "request_id=req-abc123" in capfd.readouterr().err

    def test_job_context_bound_and_cleared(
        self,
        capfd: pytest.CaptureFixture[str],
    ) -> None:
        """Test job correlation keys are added and removed."""
        configure_logging(level=LogLevel.DEBUG, force_colors=False)
        logger = get_logger(__name__)

        bind_job_context("job-42", "export")
        logger.info("inside_job")
        clear_job_context()
        logger.info("outside_job")

        lines = capfd.readouterr().err.splitlines()
        inside = next(line for line in lines if "inside_job" in line)
        outside = next(line for line in lines if "outside_job" in line)
        assert "job_id=job-42" in inside
        assert "job_type=export" in inside
        assert "job_id" not in outside

    def test_clear_job_context_keeps_request_id(
        self,
        capfd: pytest.CaptureFixture[str],
    ) -> None:
        """Test clearing the job context leaves the request ID bound."""
        configure_logging(level=LogLevel.DEBUG, force_colors=False)
        set_request_id("req-1")
        bind_job_context("job-1", "ocr")
        clear_job_context()

        get_logger(__name__).info("after_job")

        assert "request_id=req-1" in capfd.readouterr().err
