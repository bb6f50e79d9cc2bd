# ABOUTME: Logging configuration, progress display, and structured logger helpers
# ABOUTME: Provides loguru sink setup and structlog loggers for the pipeline

from .config import LoggingMode, configure_logging, detect_logging_mode, get_logging_status
from .progress import run_with_status
from .utils import (
    LogContext,
    get_logger,
    with_async_operation_context,
    with_entity_context,
    with_pipeline_context,
)

__all__ = [
    # Configuration
    "LoggingMode",
    "configure_logging",
    "detect_logging_mode",
    "get_logging_status",
    # Progress
    "run_with_status",
    # Utilities
    "LogContext",
    "get_logger",
    "with_async_operation_context",
    "with_entity_context",
    "with_pipeline_context",
]
