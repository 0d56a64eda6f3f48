"""Scalability layer: decision fusion, safety constraints, zone-aware distribution. No Kubernetes."""

from cluster_autoscaler.scalability.constraints import (
    clamp_replicas,
    ensure_odd_replicas,
    validate_cluster_topology,
    validate_quorum_protection,
)
from cluster_autoscaler.scalability.decision_engine import ScaleDecisionEngine
from cluster_autoscaler.scalability.zone_distribution import (
    calculate_target_zone_distribution,
    current_zone_distribution,
    order_zones,
)

__all__ = [
    "ScaleDecisionEngine",
    "calculate_target_zone_distribution",
    "clamp_replicas",
    "current_zone_distribution",
    "ensure_odd_replicas",
    "order_zones",
    "validate_cluster_topology",
    "validate_quorum_protection",
]
