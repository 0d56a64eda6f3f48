"""Observability layer: in-memory scaling metrics. No external backend."""

from cluster_autoscaler.observability.metrics import MetricsRegistry

__all__ = ["MetricsRegistry"]
