"""
Logging utilities for MDB_PERSISTENCE.

Provides a contextual logger that stamps every record with the correlation
id of the call being traced, plus a TRACE level below DEBUG for per-record
operation details.
"""

import contextvars
import logging
import uuid
from datetime import datetime
from typing import Any

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

# Context variable for correlation ID
_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Set a correlation ID in the current context.

    Args:
        correlation_id: Optional correlation ID (generates new one if None)

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    """Clear the correlation ID from context."""
    _correlation_id.set(None)


def get_logging_context(correlation_id: str | None = None) -> dict[str, Any]:
    """
    Get the logging context for a record.

    Args:
        correlation_id: Explicit correlation id; falls back to the context variable

    Returns:
        Dictionary with context information
    """
    context: dict[str, Any] = {
        "timestamp": datetime.now().isoformat(),
    }

    correlation_id = correlation_id or get_correlation_id()
    if correlation_id:
        context["correlation_id"] = correlation_id

    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds the correlation id to log records.

    Every logging method accepts an optional ``correlation_id`` keyword:

        logger.debug("Connected to %s", db_name, correlation_id="123")
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        """Add context to log records."""
        context = get_logging_context(kwargs.pop("correlation_id", None))
        context.update(self.extra or {})

        extra = kwargs.get("extra", {})
        if extra:
            context.update(extra)

        kwargs["extra"] = context
        return msg, kwargs

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a message at TRACE level."""
        self.log(TRACE, msg, *args, **kwargs)


def get_logger(name: str, **extra: Any) -> ContextualLoggerAdapter:
    """
    Get a contextual logger that adds correlation ids to records.

    Args:
        name: Logger name (typically __name__)
        **extra: Fixed context added to every record (e.g. collection name)

    Returns:
        ContextualLoggerAdapter instance
    """
    base_logger = logging.getLogger(name)
    return ContextualLoggerAdapter(base_logger, extra)


def as_contextual_logger(
    logger: logging.Logger | logging.LoggerAdapter | None, default_name: str, **extra: Any
) -> ContextualLoggerAdapter:
    """
    Wrap an injected logger so it understands ``correlation_id`` and ``trace``.

    Args:
        logger: Logger supplied by the caller, or None for the package default
        default_name: Logger name used when none is supplied
        **extra: Fixed context added to every record

    Returns:
        ContextualLoggerAdapter instance
    """
    if isinstance(logger, ContextualLoggerAdapter):
        return logger
    if logger is None:
        return get_logger(default_name, **extra)
    return ContextualLoggerAdapter(logger, extra)
