"""
Unit tests for MetricsCollector.
"""

from prometheus_client import CollectorRegistry

from shared.metrics import MetricsCollector, get_metrics_collector


class TestMetricsCollector:
    """Test cases for MetricsCollector."""

    def test_record_request(self, metrics, registry):
        """Requests are counted by operation and result."""
        metrics.record_request("get", "hit")
        metrics.record_request("get", "hit")
        metrics.record_request("get", "miss")

        assert registry.get_sample_value("tagcache_requests_total", {"operation": "get", "result": "hit"}) == 2
        assert registry.get_sample_value("tagcache_requests_total", {"operation": "get", "result": "miss"}) == 1

    def test_record_store_error(self, metrics, registry):
        """Store failures are counted by operation."""
        metrics.record_store_error("get_many")

        assert registry.get_sample_value("tagcache_store_errors_total", {"operation": "get_many"}) == 1

    def test_time_operation(self, metrics, registry):
        """Timed blocks are observed even when they raise."""
        with metrics.time_operation("tagcache_operation_duration_seconds", operation="set"):
            pass
        try:
            with metrics.time_operation("tagcache_operation_duration_seconds", operation="set"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert registry.get_sample_value(
            "tagcache_operation_duration_seconds_count", {"operation": "set"}
        ) == 2

    def test_unlabelled_metrics(self, metrics, registry):
        """Metrics without labels are used directly."""
        metrics.increment_counter("tagcache_tags_created_total")
        metrics.observe_histogram("tagcache_lock_wait_seconds", 0.2)

        assert registry.get_sample_value("tagcache_tags_created_total") == 1
        assert registry.get_sample_value("tagcache_lock_wait_seconds_count") == 1

    def test_unknown_metric_ignored(self, metrics):
        """Unknown names are a no-op."""
        metrics.increment_counter("no_such_metric")
        metrics.observe_histogram("no_such_metric", 1.0)

        assert metrics.get_metric("no_such_metric") is None

    def test_service_info(self, metrics, registry):
        """The collector publishes the service name."""
        assert registry.get_sample_value(
            "tagcache_service_info", {"service": "tagcache-test", "version": "1.0.0"}
        ) == 1

    def test_unregistered_collectors_coexist(self):
        """Without a registry several collectors can be created."""
        first = get_metrics_collector()
        second = get_metrics_collector()

        first.record_request("get", "hit")
        second.record_request("get", "hit")

    def test_separate_registries(self):
        """Collectors on different registries do not share counts."""
        one, two = CollectorRegistry(), CollectorRegistry()
        MetricsCollector("a", one).record_request("set", "stored")

        assert one.get_sample_value("tagcache_requests_total", {"operation": "set", "result": "stored"}) == 1
        MetricsCollector("b", two)
        assert two.get_sample_value("tagcache_requests_total", {"operation": "set", "result": "stored"}) is None
