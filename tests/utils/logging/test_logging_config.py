# ABOUTME: Tests for logging configuration module
# ABOUTME: Validates dual-mode logging setup and third-party library suppression

import logging
import os
from pathlib import Path
from unittest.mock import patch

from loguru import logger as loguru_logger

from lore_scribe.utils.logging.config import (
    LoggingMode,
    configure_logging,
    detect_logging_mode,
    get_logging_status,
)


class TestDetectLoggingMode:
    """Test logging mode detection logic."""

    def test_detect_mode_from_env(self):
        with patch.dict(os.environ, {"LORE_SCRIBE_LOG_MODE": "production"}):
            assert detect_logging_mode() == LoggingMode.PRODUCTION

    def test_detect_mode_from_env_invalid(self):
        """Test fallback to TTY detection when the variable has an invalid value."""
        with (
            patch.dict(os.environ, {"LORE_SCRIBE_LOG_MODE": "invalid"}),
            patch("sys.stdout.isatty", return_value=True),
        ):
            assert detect_logging_mode() == LoggingMode.INTERACTIVE

    def test_detect_mode_from_tty_production(self):
        with patch.dict(os.environ, {}, clear=True), patch("sys.stdout.isatty", return_value=False):
            assert detect_logging_mode() == LoggingMode.PRODUCTION


class TestConfigureLogging:
    """Test logging configuration functionality."""

    def teardown_method(self):
        loguru_logger.remove()
        for logger_name in ["", "httpx", "httpcore", "asyncio", "anyio", "py.warnings"]:
            logger = logging.getLogger(logger_name)
            logger.setLevel(logging.NOTSET)
        logging.captureWarnings(False)

    def test_configure_interactive_mode(self, tmp_path, monkeypatch):
        """Interactive mode creates the log directory."""
        monkeypatch.chdir(tmp_path)

        configure_logging(mode=LoggingMode.INTERACTIVE, log_level="INFO")

        assert Path("logs").is_dir()
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_configure_production_mode(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        configure_logging(mode=LoggingMode.PRODUCTION, log_level="DEBUG")

        assert not Path("logs").exists()
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpcore").level == logging.WARNING


class TestGetLoggingStatus:
    """Test logging status reporting."""

    def test_status_interactive_mode(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        Path("logs").mkdir()

        with patch("lore_scribe.utils.logging.config.detect_logging_mode", return_value=LoggingMode.INTERACTIVE):
            status = get_logging_status()

        assert status["mode"] == LoggingMode.INTERACTIVE
        assert status["log_directory"] is not None
        assert status["log_files"]["main"].endswith("lore-scribe.log")
        assert "httpx" in status["third_party_suppressed"]

    def test_status_production_mode(self):
        with patch("lore_scribe.utils.logging.config.detect_logging_mode", return_value=LoggingMode.PRODUCTION):
            status = get_logging_status()

        assert status["log_files"] == {"main": None, "json": None, "errors": None}
