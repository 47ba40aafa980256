"""Monitoring infrastructure for the engagement engine"""
from engagement.monitoring.prometheus_metrics import PrometheusMetrics, metrics, track_operation

__all__ = [
    "PrometheusMetrics",
    "metrics",
    "track_operation",
]
