"""
Prometheus Metrics

Defines and exports metrics for the revision engine.
"""

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter

logger = structlog.get_logger()

# Singleton metrics instance
_metrics: "Metrics | None" = None


class Metrics:
    """
    Prometheus metrics for the catalog service.

    Tracks:
    - Committed revisions by entity type and operation
    - Rejected revisions by entity type and error code
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.revisions_committed_total = Counter(
            "catalog_revisions_committed_total",
            "Total revisions committed",
            ["entity_type", "operation"],
            registry=registry,
        )

        self.revisions_rejected_total = Counter(
            "catalog_revisions_rejected_total",
            "Total revisions rejected before commit",
            ["entity_type", "code"],
            registry=registry,
        )

        logger.info("Prometheus metrics initialized")

    def record_revision(self, entity_type: str, operation: str) -> None:
        """Record a committed create, edit or delete."""
        self.revisions_committed_total.labels(
            entity_type=entity_type,
            operation=operation,
        ).inc()

    def record_rejection(self, entity_type: str, code: str) -> None:
        self.revisions_rejected_total.labels(
            entity_type=entity_type,
            code=code,
        ).inc()


def get_metrics() -> Metrics:
    """Get or create the singleton metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = Metrics()
    return _metrics
