"""Tests for structured logging."""

import json
import logging
from pathlib import Path

import pytest
import structlog

from buildsift.config.models import LoggingConfig, LogOutputConfig
from buildsift.core.logging import configure_logging, get_logger


class TestLoggingConfiguration:
    """Logging configuration tests."""

    def setup_method(self) -> None:
        """Reset structlog and stdlib logging before each test."""
        structlog.reset_defaults()
        logging.getLogger().handlers.clear()

    def test_given_json_format_when_log_then_valid_json_on_stderr(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """JSON format produces valid JSON with required fields, on stderr only."""
        # Given
        configure_logging(json_format=True, level="INFO")
        logger = get_logger("test")

        # When
        logger.info("test message", key="value")

        # Then
        captured = capsys.readouterr()
        assert captured.out == ""
        lines = [line for line in captured.err.strip().split("\n") if line]
        assert lines
        data = json.loads(lines[-1])
        assert data["event"] == "test message"
        assert data["key"] == "value"
        assert data["logger"] == "test"
        assert data["level"] == "info"
        assert "timestamp" in data

    def test_given_default_level_when_info_logged_then_filtered(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """The default WARNING level keeps informational events off stderr."""
        configure_logging()
        get_logger().info("quiet please")
        assert "quiet please" not in capsys.readouterr().err

    def test_given_config_object_when_configure_then_takes_precedence(self, tmp_path: Path) -> None:
        """LoggingConfig object takes precedence over simple params."""
        # Given
        log_file = tmp_path / "test.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[LogOutputConfig(format="json", destination=str(log_file))],
        )

        # When - config's DEBUG should override the level="ERROR" param
        configure_logging(config=config, json_format=False, level="ERROR")
        get_logger().debug("debug msg")

        # Then
        assert "debug msg" in log_file.read_text()

    def test_given_multi_output_config_when_configure_then_levels_apply_per_output(
        self, tmp_path: Path
    ) -> None:
        """Each output filters by its own level."""
        # Given
        verbose_file = tmp_path / "verbose.log"
        errors_file = tmp_path / "errors.log"
        config = LoggingConfig(
            level="DEBUG",
            outputs=[
                LogOutputConfig(format="json", destination=str(verbose_file), level="DEBUG"),
                LogOutputConfig(format="json", destination=str(errors_file), level="ERROR"),
            ],
        )

        # When
        configure_logging(config=config)
        logger = get_logger()
        logger.debug("detail")
        logger.error("failure")

        # Then
        verbose = verbose_file.read_text()
        errors = errors_file.read_text()
        assert "detail" in verbose and "failure" in verbose
        assert "detail" not in errors
        assert "failure" in errors


class TestLogOutputConfig:
    """Destination validation."""

    def test_relative_file_destination_rejected(self) -> None:
        with pytest.raises(ValueError, match="absolute"):
            LogOutputConfig(destination="logs/out.log")

    @pytest.mark.parametrize("destination", ["stderr", "stdout"])
    def test_stream_destinations_accepted(self, destination: str) -> None:
        assert LogOutputConfig(destination=destination).destination == destination
