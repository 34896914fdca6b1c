"""Prometheus metrics for the emission loop."""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)


class ProducerMetrics:
    """
    Counters and timings for emitted records.

    Metrics live on their own registry so several producers (or tests) can
    coexist in one process without duplicate-registration errors.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.records_sent = Counter(
            'producer_records_sent_total',
            'Records accepted by the stream',
            ['metric_id'],
            registry=self.registry
        )

        self.emission_errors = Counter(
            'producer_emission_errors_total',
            'Ticks whose emission failed',
            ['error_type'],
            registry=self.registry
        )

        self.emit_duration = Histogram(
            'producer_emit_duration_seconds',
            'Time spent generating, encoding and submitting one record',
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
            registry=self.registry
        )

    def record_success(self, metric_id: str, duration_seconds: float):
        self.records_sent.labels(metric_id=metric_id).inc()
        self.emit_duration.observe(duration_seconds)

    def record_failure(self, error_type: str, duration_seconds: float):
        self.emission_errors.labels(error_type=error_type).inc()
        self.emit_duration.observe(duration_seconds)

    def serve(self, port: int):
        """Expose the registry on ``/metrics`` from a background thread."""
        start_http_server(port, registry=self.registry)
        logger.info(f"Prometheus metrics server started on port {port}")
