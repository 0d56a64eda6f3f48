"""Domain models. Telemetry snapshots and scaling decisions."""

from cluster_autoscaler.domain.models.decision import ScalingAction, ScalingDecision
from cluster_autoscaler.domain.models.metrics import (
    ClusterMetrics,
    MetricTrend,
    MetricValue,
    QueryMetrics,
    RoleGroupMetrics,
    SystemMetrics,
    classify_trend,
    classify_utilization_trend,
)

__all__ = [
    "ClusterMetrics",
    "MetricTrend",
    "MetricValue",
    "QueryMetrics",
    "RoleGroupMetrics",
    "ScalingAction",
    "ScalingDecision",
    "SystemMetrics",
    "classify_trend",
    "classify_utilization_trend",
]
