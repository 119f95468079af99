"""
Prometheus metrics for the identity admin SDK.

Metrics live on a dedicated registry so that embedding applications decide
whether (and where) to expose them.
"""

import threading
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram


class SDKMetrics:
    """Centralized metrics collector for SDK components."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up SDK metrics."""

        # HTTP metrics
        self._metrics["http_requests_total"] = Counter(
            "admin_sdk_http_requests_total",
            "Total outbound HTTP attempts",
            ["method", "outcome"],
            registry=self.registry
        )

        self._metrics["http_retries_total"] = Counter(
            "admin_sdk_http_retries_total",
            "Total HTTP retries scheduled",
            ["reason"],
            registry=self.registry
        )

        self._metrics["http_request_duration_seconds"] = Histogram(
            "admin_sdk_http_request_duration_seconds",
            "Outbound HTTP attempt duration in seconds",
            ["method"],
            registry=self.registry
        )

        # Auth metrics
        self._metrics["public_key_fetches_total"] = Counter(
            "admin_sdk_public_key_fetches_total",
            "Total public key refreshes",
            ["outcome"],
            registry=self.registry
        )

        self._metrics["token_operations_total"] = Counter(
            "admin_sdk_token_operations_total",
            "Total token sign and verify operations",
            ["operation", "outcome"],
            registry=self.registry
        )

    def get(self, name: str) -> Any:
        return self._metrics[name]

    def record_http_attempt(self, method: str, outcome: str, duration: float):
        """Record a single outbound HTTP attempt."""
        with self._lock:
            self._metrics["http_requests_total"].labels(method=method, outcome=outcome).inc()
            self._metrics["http_request_duration_seconds"].labels(method=method).observe(duration)

    def record_retry(self, reason: str):
        """Record a scheduled retry ("status" or "exception")."""
        self._metrics["http_retries_total"].labels(reason=reason).inc()

    def record_key_fetch(self, outcome: str):
        """Record a public key refresh ("success" or "failure")."""
        self._metrics["public_key_fetches_total"].labels(outcome=outcome).inc()

    def record_token_operation(self, operation: str, outcome: str):
        """Record a token operation ("sign"/"verify", "success"/"failure")."""
        self._metrics["token_operations_total"].labels(operation=operation, outcome=outcome).inc()


# Global metrics instance
sdk_metrics = SDKMetrics()


def get_metrics() -> SDKMetrics:
    return sdk_metrics
