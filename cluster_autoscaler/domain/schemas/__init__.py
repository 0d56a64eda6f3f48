"""Domain schemas. Cluster specification and autoscaling configuration."""

from cluster_autoscaler.domain.schemas.cluster import (
    ROLE_PRIMARY,
    ROLE_SECONDARY,
    AutoScalingMetric,
    AutoScalingSpec,
    ClusterSpec,
    MetricSourceConfig,
    PrimaryAutoScalingConfig,
    PrometheusMetricConfig,
    QuorumProtectionConfig,
    RoleScalingConfig,
    SecondaryAutoScalingConfig,
    TopologyConfig,
    ZoneAwareScalingConfig,
    parse_target,
)

__all__ = [
    "ROLE_PRIMARY",
    "ROLE_SECONDARY",
    "AutoScalingMetric",
    "AutoScalingSpec",
    "ClusterSpec",
    "MetricSourceConfig",
    "PrimaryAutoScalingConfig",
    "PrometheusMetricConfig",
    "QuorumProtectionConfig",
    "RoleScalingConfig",
    "SecondaryAutoScalingConfig",
    "TopologyConfig",
    "ZoneAwareScalingConfig",
    "parse_target",
]
