"""Monitoring: Prometheus metrics."""

from catalog.monitoring.metrics import Metrics, get_metrics

__all__ = ["Metrics", "get_metrics"]
