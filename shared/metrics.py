"""
Shared metrics configuration for the tagged cache layer.
"""

from prometheus_client import Counter, Histogram, Info, CollectorRegistry, start_http_server
from typing import Dict, Any, Optional
import time
from contextlib import contextmanager


class MetricsCollector:
    """Centralized Prometheus metrics for a cache client.

    With ``registry=None`` the metrics are created but not registered
    anywhere, so several collectors can coexist in one process (tests).
    """

    def __init__(self, service_name: str = "tagcache", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache metrics."""
        self._metrics["service_info"] = Info(
            "tagcache_service",
            "Tagged cache client information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["tagcache_requests_total"] = Counter(
            "tagcache_requests_total",
            "Cache requests by operation and result",
            ["operation", "result"],
            registry=self.registry
        )

        self._metrics["tagcache_tags_created_total"] = Counter(
            "tagcache_tags_created_total",
            "Tags materialized with a fresh timestamp",
            registry=self.registry
        )

        self._metrics["tagcache_lock_attempts_total"] = Counter(
            "tagcache_lock_attempts_total",
            "Lock attempts by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["tagcache_lock_waits_total"] = Counter(
            "tagcache_lock_waits_total",
            "Waits for unlock by outcome",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["tagcache_store_errors_total"] = Counter(
            "tagcache_store_errors_total",
            "Store failures by operation",
            ["operation"],
            registry=self.registry
        )

        self._metrics["tagcache_operation_duration_seconds"] = Histogram(
            "tagcache_operation_duration_seconds",
            "Cache operation duration in seconds",
            ["operation"],
            registry=self.registry
        )

        self._metrics["tagcache_lock_wait_seconds"] = Histogram(
            "tagcache_lock_wait_seconds",
            "Time spent waiting for a lock to be released",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 3.0, 5.0, 10.0),
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def start_metrics_server(self, port: int = 9090):
        """Start the Prometheus metrics server."""
        if self.registry is not None:
            start_http_server(port, registry=self.registry)
        else:
            start_http_server(port)

    def record_request(self, operation: str, result: str):
        """Record the result of a get or set."""
        self._metrics["tagcache_requests_total"].labels(operation=operation, result=result).inc()

    def record_store_error(self, operation: str):
        """Record a store failure."""
        self._metrics["tagcache_store_errors_total"].labels(operation=operation).inc()

    @contextmanager
    def time_operation(self, operation_name: str, **labels):
        """Context manager to time an operation."""
        start_time = time.perf_counter()
        try:
            yield
        finally:
            duration = time.perf_counter() - start_time
            if operation_name in self._metrics:
                metric = self._metrics[operation_name]
                (metric.labels(**labels) if labels else metric).observe(duration)

    def increment_counter(self, metric_name: str, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).inc()

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            metric = self._metrics[metric_name]
            (metric.labels(**labels) if labels else metric).observe(value)


def get_metrics_collector(service_name: str = "tagcache", registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector for a service."""
    return MetricsCollector(service_name, registry)
