"""
Prometheus metrics for publish and sync runs.

Author: Ted Iro
Organization: Rydlr Cloud Services Ltd (github.com/rydlrcs)
Date: October 19, 2026

Metrics Provided:
    - publish_files_total: Counter of publish decisions by outcome
    - upload_bytes_total: Counter for uploaded bytes
    - delete_objects_total: Counter of sync deletes by outcome
    - gcs_api_errors_total: Counter for GCS API errors
    - gcs_api_duration_seconds: Histogram of GCS call latency
    - active_requests: Gauge of in-flight GCS calls

Usage:
    from gcs_publish.utils.metrics import get_metrics

    metrics = get_metrics()
    with metrics.track_gcs_call("upload"):
        blob.upload_from_filename(path)
    metrics.record_publish("uploaded", bytes_uploaded=1024)

    # Start metrics server:
    python -m gcs_publish.utils.metrics --port 9090
"""

import os
from contextlib import contextmanager, nullcontext
from typing import Iterator, Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)

from gcs_publish import __version__
from gcs_publish.utils.logging import get_logger

# Module-level logger
logger = get_logger(__name__)

PUBLISH_OUTCOMES = ["uploaded", "skipped", "simulated", "failed", "rejected"]
DELETE_OUTCOMES = ["deleted", "simulated", "failed"]


class PrometheusMetrics:
    """
    Centralized Prometheus metrics for publish and sync runs.

    Example:
        >>> metrics = PrometheusMetrics(registry=CollectorRegistry())
        >>> metrics.record_publish("skipped")
    """

    def __init__(
        self,
        enabled: bool = True,
        registry: Optional[CollectorRegistry] = None,
    ) -> None:
        """
        Initialize metrics collectors.

        Args:
            enabled: Whether metrics collection is enabled
            registry: Custom Prometheus registry (uses default if None)
        """
        self.enabled = enabled
        self.registry = registry if registry is not None else REGISTRY

        if not self.enabled:
            logger.debug("Metrics collection disabled")
            return

        # ====================================================================
        # Publish / Sync Operations
        # ====================================================================

        self.publish_files = Counter(
            name="publish_files_total",
            documentation="Files processed by the publisher",
            labelnames=["outcome"],
            registry=self.registry,
        )

        self.upload_bytes = Counter(
            name="upload_bytes_total",
            documentation="Total bytes uploaded to GCS",
            registry=self.registry,
        )

        self.delete_objects = Counter(
            name="delete_objects_total",
            documentation="Stale objects handled by sync",
            labelnames=["outcome"],
            registry=self.registry,
        )

        # ====================================================================
        # GCS API
        # ====================================================================

        self.gcs_api_errors = Counter(
            name="gcs_api_errors_total",
            documentation="Total GCS API errors",
            labelnames=["operation", "error_type"],  # operation: metadata/upload/list/delete
            registry=self.registry,
        )

        self.gcs_api_duration = Histogram(
            name="gcs_api_duration_seconds",
            documentation="GCS API call latency",
            labelnames=["operation"],
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry,
        )

        self.active_requests = Gauge(
            name="active_requests",
            documentation="Number of GCS calls currently in flight",
            labelnames=["operation"],
            registry=self.registry,
        )

        self.app_info = Info(
            name="application",
            documentation="Application metadata",
            registry=self.registry,
        )
        self.app_info.info({"version": __version__, "name": "gcs-publish"})

    @contextmanager
    def _tracked(self, operation: str) -> Iterator[None]:
        gauge = self.active_requests.labels(operation=operation)
        gauge.inc()
        try:
            with self.gcs_api_duration.labels(operation=operation).time():
                yield
        finally:
            gauge.dec()

    def track_gcs_call(self, operation: str):
        """
        Context manager timing a single GCS API call.

        Args:
            operation: metadata, upload, list or delete
        """
        if not self.enabled:
            return nullcontext()
        return self._tracked(operation)

    def record_publish(self, outcome: str, bytes_uploaded: int = 0) -> None:
        """
        Record a publisher decision.

        Args:
            outcome: One of PUBLISH_OUTCOMES
            bytes_uploaded: Size of the uploaded file, if any
        """
        if not self.enabled:
            return

        self.publish_files.labels(outcome=outcome).inc()
        if bytes_uploaded > 0:
            self.upload_bytes.inc(bytes_uploaded)

    def record_delete(self, outcome: str) -> None:
        """Record a sync delete decision (one of DELETE_OUTCOMES)."""
        if not self.enabled:
            return

        self.delete_objects.labels(outcome=outcome).inc()

    def record_gcs_error(self, operation: str, error_type: str) -> None:
        """
        Record GCS API error.

        Args:
            operation: GCS operation (metadata, upload, list, delete)
            error_type: Exception class name (Forbidden, NotFound, ...)
        """
        if not self.enabled:
            return

        self.gcs_api_errors.labels(operation=operation, error_type=error_type).inc()


# ============================================================================
# Global Metrics Instance
# ============================================================================

_metrics_instance: Optional[PrometheusMetrics] = None


def get_metrics() -> PrometheusMetrics:
    """
    Get global metrics instance (singleton).

    Collection is disabled when METRICS_ENABLED=false.
    """
    global _metrics_instance

    if _metrics_instance is None:
        enabled = os.getenv("METRICS_ENABLED", "true").lower() == "true"
        _metrics_instance = PrometheusMetrics(enabled=enabled)

    return _metrics_instance


# ============================================================================
# Metrics Server
# ============================================================================

def start_metrics_server(port: int = 9090, addr: str = "0.0.0.0") -> None:
    """
    Start Prometheus metrics HTTP server.

    Args:
        port: Port to listen on (default: 9090)
        addr: Address to bind to (default: 0.0.0.0 - all interfaces)

    Note:
        Blocks forever - run in separate thread or process
    """
    logger.info(f"Starting Prometheus metrics server on {addr}:{port}")

    try:
        start_http_server(port=port, addr=addr)
        logger.info(f"Metrics server running at http://{addr}:{port}/metrics")

        import signal
        signal.pause()

    except KeyboardInterrupt:
        logger.info("Metrics server shutting down")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="GCS Publish Metrics Server")
    parser.add_argument(
        "--port",
        type=int,
        default=9090,
        help="Metrics server port (default: 9090)",
    )
    parser.add_argument(
        "--addr",
        type=str,
        default="0.0.0.0",
        help="Address to bind to (default: 0.0.0.0)",
    )

    args = parser.parse_args()
    get_metrics()
    start_metrics_server(port=args.port, addr=args.addr)
