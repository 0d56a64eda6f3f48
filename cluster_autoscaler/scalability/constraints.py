"""Safety constraints applied on top of metric-driven targets: quorum floor, odd voter counts, bounds, topology."""

from cluster_autoscaler.domain.exceptions import QuorumProtectionError, TopologyViolationError
from cluster_autoscaler.domain.schemas.cluster import QuorumProtectionConfig


def validate_quorum_protection(protection: QuorumProtectionConfig | None, healthy_primaries: int) -> None:
    """Raise QuorumProtectionError when enabled protection sees fewer healthy primaries than its floor."""
    if protection is None or not protection.enabled:
        return
    if healthy_primaries < protection.min_healthy_primaries:
        raise QuorumProtectionError(
            f"insufficient healthy primaries: {healthy_primaries} < {protection.min_healthy_primaries}"
        )


def ensure_odd_replicas(target: int, min_replicas: int, max_replicas: int) -> int:
    """
    Nudge an even voter count to an odd one: target+1 when within max, else target-1
    when within min, else unchanged.
    """
    if target % 2 == 1:
        return target
    if target + 1 <= max_replicas:
        return target + 1
    if target - 1 >= min_replicas:
        return target - 1
    return target


def clamp_replicas(target: int, min_replicas: int, max_replicas: int) -> int:
    return max(min_replicas, min(target, max_replicas))


def validate_cluster_topology(primaries: int, secondaries: int) -> None:
    """
    A valid topology is one primary with at least one secondary, or two or more
    primaries with any number of secondaries.
    """
    if primaries == 1 and secondaries == 0:
        raise TopologyViolationError(
            "invalid cluster topology: requires either 1 primary + at least 1 secondary, "
            f"or multiple primaries; target: {primaries} primaries, {secondaries} secondaries"
        )
    if primaries < 1:
        raise TopologyViolationError(f"invalid cluster topology: must have at least 1 primary, target: {primaries}")
    if secondaries < 0:
        raise TopologyViolationError(
            f"invalid cluster topology: cannot have negative secondaries, target: {secondaries}"
        )
