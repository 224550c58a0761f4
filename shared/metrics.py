"""
Shared metrics configuration for the query cache.
"""

from typing import Dict, Any, Optional
import threading

from prometheus_client import REGISTRY, Counter, Histogram, Info, CollectorRegistry, start_http_server


class MetricsCollector:
    """Prometheus metrics for coordinator activity.

    Pass a dedicated ``CollectorRegistry`` when more than one collector lives in
    the same process (tests, multiple coordinators); the default registry
    rejects duplicate metric names.
    """

    def __init__(self, service_name: str = "query_cache", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up cache metrics."""
        self._metrics["service_info"] = Info(
            "query_cache_service",
            "Query cache information",
            registry=self.registry
        )
        self._metrics["service_info"].info({
            "service": self.service_name,
            "version": "1.0.0"
        })

        self._metrics["query_cache_requests_total"] = Counter(
            "query_cache_requests_total",
            "Total query() calls by outcome",
            ["query", "result"],
            registry=self.registry
        )

        self._metrics["query_cache_fetch_total"] = Counter(
            "query_cache_fetch_total",
            "Total settled fetches",
            ["query", "status"],
            registry=self.registry
        )

        self._metrics["query_cache_fetch_duration_seconds"] = Histogram(
            "query_cache_fetch_duration_seconds",
            "Fetch duration in seconds",
            ["query"],
            registry=self.registry
        )

        self._metrics["query_cache_invalidations_total"] = Counter(
            "query_cache_invalidations_total",
            "Total invalidated entries",
            ["query"],
            registry=self.registry
        )

        self._metrics["query_cache_stale_marks_total"] = Counter(
            "query_cache_stale_marks_total",
            "Total stale notifications published by deferred checks",
            ["query"],
            registry=self.registry
        )

        self._metrics["errors_total"] = Counter(
            "query_cache_errors_total",
            "Total errors",
            ["error_type", "service"],
            registry=self.registry
        )

    def get_metric(self, name: str):
        """Get a metric by name."""
        return self._metrics.get(name)

    def start_metrics_server(self, port: int = 9090):
        """Start the Prometheus metrics server."""
        start_http_server(port, registry=self.registry or REGISTRY)

    def record_error(self, error_type: str, service: Optional[str] = None):
        """Record error metrics."""
        service_name = service or self.service_name
        self._metrics["errors_total"].labels(error_type=error_type, service=service_name).inc()

    def increment_counter(self, metric_name: str, amount: float = 1.0, **labels):
        """Increment a counter metric."""
        if metric_name in self._metrics:
            with self._lock:
                self._metrics[metric_name].labels(**labels).inc(amount)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        """Observe a histogram metric."""
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)


def get_metrics_collector(service_name: str = "query_cache", registry: Optional[CollectorRegistry] = None) -> MetricsCollector:
    """Get a metrics collector."""
    return MetricsCollector(service_name, registry)
