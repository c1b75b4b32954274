"""
Connection metrics for MDB_PERSISTENCE.

Connection components record how long open/close took, against which
database, and whether they succeeded. The collector aggregates those
samples per operation and database.
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


def metric_key(operation_name: str, database: Optional[str] = None) -> str:
    """Build the collector key, e.g. ``connection.open[database=test]``."""
    if database:
        return f"{operation_name}[database={database}]"
    return operation_name


@dataclass
class OperationMetrics:
    """Samples of one connection operation against one database."""

    operation_name: str
    database: Optional[str] = None
    count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: Optional[float] = None
    max_duration_ms: float = 0.0
    last_error_type: Optional[str] = None

    def record(self, duration_ms: float, success: bool = True, error_type: Optional[str] = None) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        if self.min_duration_ms is None or duration_ms < self.min_duration_ms:
            self.min_duration_ms = duration_ms
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if not success:
            self.error_count += 1
            self.last_error_type = error_type

    def to_dict(self) -> dict[str, Any]:
        avg = self.total_duration_ms / self.count if self.count else 0.0
        return {
            "operation": self.operation_name,
            "database": self.database,
            "count": self.count,
            "error_count": self.error_count,
            "avg_duration_ms": round(avg, 2),
            "min_duration_ms": round(self.min_duration_ms or 0.0, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
            "last_error_type": self.last_error_type,
        }


class MetricsCollector:
    """
    Thread-safe collector of connection metrics.

    One entry is kept per operation and database; the least recently
    updated entry is evicted once ``max_metrics`` entries are held.
    """

    def __init__(self, max_metrics: int = 1000):
        self._metrics: OrderedDict[str, OperationMetrics] = OrderedDict()
        self._lock = threading.Lock()
        self._max_metrics = max_metrics

    def record_operation(
        self,
        operation_name: str,
        duration_ms: float,
        success: bool = True,
        database: Optional[str] = None,
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record an operation execution.

        Args:
            operation_name: Name of the operation (e.g., "connection.open")
            duration_ms: Duration in milliseconds
            success: Whether the operation succeeded
            database: Database the connection was bound to, if known
            error_type: Exception class name of a failed execution
        """
        key = metric_key(operation_name, database)

        with self._lock:
            if key not in self._metrics:
                if len(self._metrics) >= self._max_metrics:
                    self._metrics.popitem(last=False)
                self._metrics[key] = OperationMetrics(operation_name, database)
            else:
                self._metrics.move_to_end(key)

            self._metrics[key].record(duration_ms, success, error_type)

    def get_metrics(self, operation_name: Optional[str] = None) -> dict[str, dict[str, Any]]:
        """Get metrics by key, optionally only those of ``operation_name``."""
        with self._lock:
            return {
                k: v.to_dict()
                for k, v in self._metrics.items()
                if not operation_name or v.operation_name == operation_name
            }

    def get_operation_count(self, operation_name: str, database: Optional[str] = None) -> int:
        """Get the count of executions for an operation, across databases unless one is given."""
        with self._lock:
            return sum(
                metric.count
                for metric in self._metrics.values()
                if metric.operation_name == operation_name
                and (database is None or metric.database == database)
            )

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()


# Global metrics collector instance
_metrics_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get or create the global metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


def record_operation(
    operation_name: str,
    duration_ms: float,
    success: bool = True,
    database: Optional[str] = None,
    error_type: Optional[str] = None,
) -> None:
    """Record an operation in the global metrics collector."""
    get_metrics_collector().record_operation(
        operation_name, duration_ms, success, database=database, error_type=error_type
    )
