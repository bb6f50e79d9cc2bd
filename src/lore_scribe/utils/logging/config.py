# ABOUTME: Logging configuration using loguru sinks
# ABOUTME: Interactive runs log to rotating files under logs/, production runs emit JSON lines on stdout

import logging
import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger

LOG_DIR = Path("logs")
MAIN_LOG_NAME = "lore-scribe.log"
JSON_LOG_NAME = "lore-scribe.json"
ERROR_LOG_NAME = "errors.log"

TEXT_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
JSON_FORMAT = "{time} | {level} | {name} | {message}"

# HTTP client chatter stays out of the pipeline logs
THIRD_PARTY_LOGGERS = ["httpx", "httpcore", "asyncio", "anyio"]


class LoggingMode:
    """Logging mode constants."""

    INTERACTIVE = "interactive"
    PRODUCTION = "production"


def detect_logging_mode() -> str:
    """Pick the mode from LORE_SCRIBE_LOG_MODE, falling back to whether stdout is a terminal."""
    mode = os.getenv("LORE_SCRIBE_LOG_MODE", "").lower()
    if mode in (LoggingMode.INTERACTIVE, LoggingMode.PRODUCTION):
        return mode

    return LoggingMode.INTERACTIVE if sys.stdout.isatty() else LoggingMode.PRODUCTION


def setup_third_party_logging() -> None:
    for logger_name in THIRD_PARTY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.captureWarnings(True)
    logging.getLogger("py.warnings").setLevel(logging.ERROR)


def _add_stdout_sink(log_level: str) -> None:
    logger.add(sys.stdout, level=log_level, format=JSON_FORMAT, serialize=True)


def _add_file_sinks(log_dir: Path, log_level: str, log_file: str | None) -> None:
    logger.add(
        log_file or str(log_dir / MAIN_LOG_NAME),
        level=log_level,
        format=TEXT_FORMAT,
        rotation="10 MB",
        retention="7 days",
    )
    logger.add(
        log_dir / JSON_LOG_NAME,
        level=log_level,
        format=JSON_FORMAT,
        serialize=True,
        rotation="10 MB",
        retention="7 days",
    )
    logger.add(log_dir / ERROR_LOG_NAME, level="ERROR", format=TEXT_FORMAT, backtrace=True, diagnose=True)


def configure_logging(mode: str | None = None, log_level: str = "INFO", log_file: str | None = None) -> None:
    """Configure loguru sinks for one process.

    Args:
        mode: Logging mode (interactive/production), auto-detected if None
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Custom path for the human-readable log, interactive mode only
    """
    mode = mode or detect_logging_mode()

    setup_third_party_logging()
    logging.getLogger().setLevel(getattr(logging, log_level.upper(), logging.INFO))

    logger.remove()

    if mode != LoggingMode.INTERACTIVE:
        _add_stdout_sink(log_level)
        return

    try:
        LOG_DIR.mkdir(exist_ok=True)
    except OSError:
        # Read-only working directory
        _add_stdout_sink(log_level)
        return

    _add_file_sinks(LOG_DIR, log_level, log_file)


def get_logging_status() -> dict[str, Any]:
    """Report the detected mode and where each sink writes."""
    mode = detect_logging_mode()
    interactive = mode == LoggingMode.INTERACTIVE

    def _sink(name: str) -> str | None:
        return str(LOG_DIR / name) if interactive else None

    return {
        "mode": mode,
        "log_directory": str(LOG_DIR.absolute()) if LOG_DIR.exists() else None,
        "log_files": {
            "main": _sink(MAIN_LOG_NAME),
            "json": _sink(JSON_LOG_NAME),
            "errors": _sink(ERROR_LOG_NAME),
        },
        "third_party_suppressed": list(THIRD_PARTY_LOGGERS),
    }
