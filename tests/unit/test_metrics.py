"""
Unit tests for MetricsCollector.

Tests per-database aggregation of connection operations, bounded storage
and thread-safety.
"""

import threading

from mdb_persistence.observability.metrics import (
    MetricsCollector,
    get_metrics_collector,
    metric_key,
    record_operation,
)


class TestMetricsCollector:
    """Test per-operation aggregation."""

    def test_aggregates_durations(self):
        collector = MetricsCollector()
        collector.record_operation("connection.open", 10.0, database="test")
        collector.record_operation(
            "connection.open", 30.0, success=False, database="test", error_type="ConnectionFailure"
        )

        metrics = collector.get_metrics()["connection.open[database=test]"]

        assert metrics["database"] == "test"
        assert metrics["count"] == 2
        assert metrics["avg_duration_ms"] == 20.0
        assert metrics["min_duration_ms"] == 10.0
        assert metrics["max_duration_ms"] == 30.0
        assert metrics["error_count"] == 1
        assert metrics["last_error_type"] == "ConnectionFailure"

    def test_databases_create_separate_keys(self):
        collector = MetricsCollector()
        collector.record_operation("connection.open", 1.0, database="a")
        collector.record_operation("connection.open", 1.0, database="b")
        collector.record_operation("connection.close", 1.0, database="a")

        keys = set(collector.get_metrics("connection.open"))

        assert keys == {"connection.open[database=a]", "connection.open[database=b]"}
        assert collector.get_operation_count("connection.open") == 2
        assert collector.get_operation_count("connection.open", database="a") == 1

    def test_key_without_database(self):
        assert metric_key("connection.open") == "connection.open"
        assert metric_key("connection.open", "test") == "connection.open[database=test]"

    def test_evicts_oldest_key(self):
        """Test that storage is bounded to max_metrics keys."""
        collector = MetricsCollector(max_metrics=2)
        collector.record_operation("a", 1.0)
        collector.record_operation("b", 1.0)
        collector.record_operation("a", 1.0)
        collector.record_operation("c", 1.0)

        assert set(collector.get_metrics()) == {"a", "c"}

    def test_reset(self):
        collector = MetricsCollector()
        collector.record_operation("connection.close", 1.0)

        collector.reset()

        assert collector.get_metrics() == {}

    def test_concurrent_record_operation(self):
        """Test that concurrent record_operation calls are thread-safe."""
        collector = MetricsCollector()
        num_threads = 8
        operations_per_thread = 50
        barrier = threading.Barrier(num_threads)

        def record_operations():
            barrier.wait()
            for i in range(operations_per_thread):
                collector.record_operation("connection.open", duration_ms=float(i), database="test")

        threads = [threading.Thread(target=record_operations) for _ in range(num_threads)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert collector.get_operation_count("connection.open") == num_threads * operations_per_thread


class TestGlobalCollector:
    def test_record_operation_uses_global_collector(self):
        record_operation("connection.open", 5.0, database="test")

        assert get_metrics_collector().get_operation_count("connection.open", database="test") == 1
