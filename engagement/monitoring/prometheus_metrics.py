"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, REGISTRY

from engagement import config

logger = logging.getLogger(__name__)


class PrometheusMetrics:
    """Container for engagement engine metrics"""

    def __init__(self, enabled: bool = config.ENABLE_PROMETHEUS, registry: CollectorRegistry = REGISTRY):
        if not enabled:
            logger.info("Prometheus metrics disabled")
            self._enabled = False
            return

        # Engine operations (ensure_weekly, notify_completion, ...)
        self.operations_total = Counter(
            'engagement_operations_total',
            'Total engagement engine operations',
            ['operation', 'result'],
            registry=registry
        )

        self.operation_duration_seconds = Histogram(
            'engagement_operation_duration_seconds',
            'Engagement engine operation latency',
            ['operation'],
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0],
            registry=registry
        )

        self._enabled = True
        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = PrometheusMetrics()


@contextmanager
def track_operation(operation: str, collector: Optional[PrometheusMetrics] = None):
    """
    Track one engine operation

    The result label is 'ok', or the error kind of an EngagementError
    ('not_found', 'precondition_failed', ...), or 'error' for anything else.
    """
    collector = collector or metrics
    if not collector.enabled:
        yield
        return

    start_time = time.time()
    result = "error"

    try:
        yield
        result = "ok"
    except Exception as e:
        result = getattr(e, "kind", "error")
        raise
    finally:
        duration = time.time() - start_time
        collector.operation_duration_seconds.labels(
            operation=operation
        ).observe(duration)

        collector.operations_total.labels(
            operation=operation,
            result=result
        ).inc()
