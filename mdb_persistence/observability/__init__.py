"""
Observability components.

Provides contextual logging with correlation ids and operation metrics.
"""

from .logging import (
    TRACE,
    ContextualLoggerAdapter,
    as_contextual_logger,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    get_logging_context,
    set_correlation_id,
)
from .metrics import (
    MetricsCollector,
    OperationMetrics,
    get_metrics_collector,
    record_operation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "OperationMetrics",
    "get_metrics_collector",
    "record_operation",
    # Logging
    "TRACE",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "get_logging_context",
    "ContextualLoggerAdapter",
    "as_contextual_logger",
    "get_logger",
]
