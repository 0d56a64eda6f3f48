"""Deterministic spread of a role group's replicas across the failure domains currently hosting it."""

from collections import Counter
from typing import Iterable

from cluster_autoscaler.domain.schemas.cluster import ZoneAwareScalingConfig

UNKNOWN_ZONE = "unknown"


def current_zone_distribution(zones: Iterable[str | None]) -> dict[str, int]:
    """Count replicas per zone; replicas without a zone label land in 'unknown'."""
    return dict(Counter(zone or UNKNOWN_ZONE for zone in zones))


def order_zones(zones: Iterable[str], preference: list[str] | None = None) -> list[str]:
    """Preferred zones first (in preference order), then the rest by name."""
    zones = set(zones)
    preferred = [z for z in (preference or []) if z in zones]
    return preferred + sorted(zones - set(preferred))


def calculate_target_zone_distribution(
    total_replicas: int,
    current: dict[str, int],
    config: ZoneAwareScalingConfig,
) -> dict[str, int]:
    """
    Even split of total_replicas over the zones in `current`: base = total // zones with the
    remainder given one each to the first zones in order. With more zones than replicas,
    one replica each for the first `total_replicas` zones. Every zone is then raised to
    `min_replicas_per_zone`, which may push the sum above total_replicas.
    """
    zones = order_zones(current, config.zone_preference)
    if not zones:
        return {}

    total_replicas = max(0, total_replicas)
    if len(zones) > total_replicas:
        target = {zone: 1 if i < total_replicas else 0 for i, zone in enumerate(zones)}
    else:
        base, remainder = divmod(total_replicas, len(zones))
        target = {zone: base + (1 if i < remainder else 0) for i, zone in enumerate(zones)}

    return {zone: max(count, config.min_replicas_per_zone) for zone, count in target.items()}
