"""
Tests for logging core module.
"""

import io
import json
import logging

import pytest

from venturedao.logging import (
    LogConfig,
    LogLevel,
    LogManager,
    get_logger,
    setup_logging,
    shutdown_logging,
)


class TestLogLevel:
    """Test LogLevel enum."""

    def test_to_stdlib(self):
        """Test mapping to stdlib levels."""
        assert LogLevel.DEBUG.to_stdlib() == logging.DEBUG
        assert LogLevel.WARNING.to_stdlib() == logging.WARNING
        assert LogLevel.CRITICAL.to_stdlib() == logging.CRITICAL


class TestLogConfig:
    """Test LogConfig class."""

    def test_defaults(self):
        """Test default configuration."""
        config = LogConfig()

        assert config.name == "venturedao"
        assert config.level == LogLevel.INFO
        assert config.format_type == "json"
        assert config.handlers == ["console"]
        config.validate()

    @pytest.mark.parametrize(
        "kwargs",
        [{"format_type": "xml"}, {"handlers": ["syslog"]}, {"handlers": ["file"]}],
    )
    def test_invalid(self, kwargs):
        """Test invalid configurations."""
        with pytest.raises(ValueError):
            LogConfig(**kwargs).validate()


class TestLogManager:
    """Test LogManager and module helpers."""

    @pytest.fixture(autouse=True)
    def cleanup(self):
        yield
        shutdown_logging()

    def test_console_json_output(self):
        """Test records reach the stream as JSON."""
        stream = io.StringIO()
        setup_logging(LogConfig(name="venturedao.test", stream=stream))

        logging.getLogger("venturedao.test.governance").info("Member 0xa joined")

        data = json.loads(stream.getvalue().strip())
        assert data["message"] == "Member 0xa joined"
        assert data["logger"] == "venturedao.test.governance"

    def test_level_filtering(self):
        """Test records below the configured level are dropped."""
        stream = io.StringIO()
        setup_logging(
            LogConfig(
                name="venturedao.test", level=LogLevel.WARNING, format_type="text", stream=stream
            )
        )

        logger = logging.getLogger("venturedao.test")
        logger.info("quiet")
        logger.warning("rolled back")

        output = stream.getvalue()
        assert "quiet" not in output
        assert "rolled back" in output

    def test_file_handler(self, tmp_path):
        """Test writing to a log file."""
        path = tmp_path / "governance.log"
        manager = LogManager(
            LogConfig(name="venturedao.filetest", handlers=["file"], file_path=str(path))
        )

        logging.getLogger("venturedao.filetest").info("Proposal 1 executed")
        manager.shutdown()

        assert "Proposal 1 executed" in path.read_text(encoding="utf-8")

    def test_setup_replaces_previous_manager(self):
        """Test reconfiguring detaches earlier handlers."""
        first = setup_logging(LogConfig(name="venturedao.test", stream=io.StringIO()))
        setup_logging(LogConfig(name="venturedao.test", stream=io.StringIO()))

        assert first.handlers == []
        assert len(logging.getLogger("venturedao.test").handlers) == 1

    def test_get_logger_namespace(self):
        """Test logger names are placed under the package."""
        assert get_logger("governance").name == "venturedao.governance"
        assert get_logger("venturedao.errors").name == "venturedao.errors"
        assert get_logger().name == "venturedao"
