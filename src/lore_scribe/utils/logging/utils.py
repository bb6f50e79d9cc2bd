# ABOUTME: Structured logger helpers built on structlog
# ABOUTME: Binds pipeline, entity and operation context and times async phase entry points

import functools
import time
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

import structlog

F = TypeVar("F", bound=Callable[..., Any])


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, named after the calling module when possible."""
    return structlog.get_logger(name or "lore_scribe")


def generate_operation_id() -> str:
    """Short id correlating the log lines of one operation."""
    return uuid.uuid4().hex[:8]


def with_async_operation_context(operation: str, **context) -> Callable[[F], F]:
    """Decorator logging start, completion and failure of an async phase.

    Every line carries ``operation``, a fresh ``operation_id`` and the function
    name; completion and failure lines add ``duration_seconds``. Exceptions are
    logged and re-raised unchanged.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            bound_logger = get_logger(func.__module__).bind(
                operation=operation, operation_id=generate_operation_id(), function=func.__name__, **context
            )
            bound_logger.info(f"Starting {operation}")
            started = time.perf_counter()

            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                bound_logger.error(
                    f"Failed {operation}",
                    duration_seconds=round(time.perf_counter() - started, 3),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

            bound_logger.info(f"Completed {operation}", duration_seconds=round(time.perf_counter() - started, 3))
            return result

        return wrapper  # type: ignore[return-value]

    return decorator


class LogContext:
    """Binds context onto a logger for the duration of a ``with`` block.

    An exception escaping the block is logged once and then propagates.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger, **context):
        self.logger = logger.bind(**context)

    def __enter__(self) -> structlog.stdlib.BoundLogger:
        return self.logger

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.logger.error("Context operation failed", error=str(exc_val), error_type=exc_type.__name__)


def with_entity_context(entity_id: str, entity_class: str | None = None) -> LogContext:
    """Logging context for work on a single registry entry."""
    return LogContext(get_logger("lore_scribe.entity"), entity_id=entity_id, entity_class=entity_class)


def with_pipeline_context(pipeline_name: str, **context) -> LogContext:
    """Logging context for one CLI pipeline run, tagged with a fresh operation id."""
    return LogContext(
        get_logger("lore_scribe.pipeline"),
        pipeline=pipeline_name,
        operation_id=generate_operation_id(),
        **context,
    )
