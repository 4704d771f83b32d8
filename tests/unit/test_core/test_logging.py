"""Unit tests for logging configuration."""

from pathlib import Path

from loguru import logger

from ghost_api.core.logging import setup_logging


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        """setup_logging with valid log level does not raise."""
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("debug")

    def test_file_sink_created(self, tmp_path: Path) -> None:
        """A log file is written under log_dir."""
        log_dir = tmp_path / "logs"
        setup_logging("INFO", log_dir=str(log_dir))
        logger.info("file sink check")
        logger.complete()

        log_file = log_dir / "ghost-api.log"
        assert log_file.exists()
        assert "file sink check" in log_file.read_text()
        setup_logging("INFO")

    def test_errors_also_go_to_error_log(self, tmp_path: Path) -> None:
        setup_logging("INFO", log_dir=str(tmp_path))
        logger.info("routine message")
        logger.error("provider exploded")

        error_log = (tmp_path / "error.log").read_text()
        assert "provider exploded" in error_log
        assert "routine message" not in error_log
        setup_logging("INFO")
