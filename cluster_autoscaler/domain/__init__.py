"""Domain layer: telemetry models, decisions, cluster schemas, exceptions. Pure business logic only."""

from cluster_autoscaler.domain.exceptions import (
    DomainError,
    InvalidMetricConfigError,
    QuorumProtectionError,
    TopologyViolationError,
)
from cluster_autoscaler.domain.models import (
    ClusterMetrics,
    MetricTrend,
    MetricValue,
    QueryMetrics,
    RoleGroupMetrics,
    ScalingAction,
    ScalingDecision,
    SystemMetrics,
)
from cluster_autoscaler.domain.schemas import AutoScalingMetric, ClusterSpec, RoleScalingConfig

__all__ = [
    "AutoScalingMetric",
    "ClusterMetrics",
    "ClusterSpec",
    "DomainError",
    "InvalidMetricConfigError",
    "MetricTrend",
    "MetricValue",
    "QueryMetrics",
    "QuorumProtectionError",
    "RoleGroupMetrics",
    "RoleScalingConfig",
    "ScalingAction",
    "ScalingDecision",
    "SystemMetrics",
    "TopologyViolationError",
]
