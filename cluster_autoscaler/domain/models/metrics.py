"""Telemetry snapshot models. Built fresh every reconciliation pass and never cached."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum


class MetricTrend(str, Enum):
    UNKNOWN = "unknown"
    DECREASING = "decreasing"
    STABLE = "stable"
    INCREASING = "increasing"


def classify_trend(
    current: float,
    previous: float,
    up_ratio: float = 1.1,
    down_ratio: float = 0.9,
) -> MetricTrend:
    """Trend of current relative to previous. Display only; never used for scoring."""
    if current > previous * up_ratio:
        return MetricTrend.INCREASING
    if current < previous * down_ratio:
        return MetricTrend.DECREASING
    return MetricTrend.STABLE


def classify_utilization_trend(current: float, high: float = 0.75, low: float = 0.25) -> MetricTrend:
    """Trend for a 0-1 utilisation value when no real history exists."""
    if current > high:
        return MetricTrend.INCREASING
    if current < low:
        return MetricTrend.DECREASING
    return MetricTrend.STABLE


@dataclass(frozen=True)
class MetricValue:
    """
    One observed signal. `previous` is a simulated prior reading (there is no
    historical store), so `trend` is advisory context for reason strings only.
    """

    current: float
    previous: float
    trend: MetricTrend
    threshold: float

    def __post_init__(self) -> None:
        if self.current < 0 or self.previous < 0:
            raise ValueError("metric readings must be non-negative")

    @classmethod
    def observe(
        cls,
        current: float,
        previous: float,
        threshold: float,
        up_ratio: float = 1.1,
        down_ratio: float = 0.9,
    ) -> "MetricValue":
        """Build a value with the trend derived from current vs previous."""
        current = max(0.0, current)
        previous = max(0.0, previous)
        return cls(
            current=current,
            previous=previous,
            trend=classify_trend(current, previous, up_ratio, down_ratio),
            threshold=threshold,
        )

    @classmethod
    def utilization(cls, current: float, threshold: float = 0.8) -> "MetricValue":
        """Build a 0-1 utilisation value; previous is simulated as 90% of current."""
        current = max(0.0, current)
        return cls(
            current=current,
            previous=current * 0.9,
            trend=classify_utilization_trend(current),
            threshold=threshold,
        )

    @classmethod
    def idle(cls, threshold: float = 0.8) -> "MetricValue":
        return cls(current=0.0, previous=0.0, trend=MetricTrend.STABLE, threshold=threshold)


@dataclass(frozen=True)
class RoleGroupMetrics:
    total: int
    healthy: int
    cpu: MetricValue
    memory: MetricValue
    connections: MetricValue
    throughput: MetricValue

    def __post_init__(self) -> None:
        if self.healthy > self.total:
            # Pods still terminating after a scale-down can outnumber spec.replicas.
            object.__setattr__(self, "healthy", self.total)


@dataclass(frozen=True)
class QueryMetrics:
    average_latency: timedelta
    p95_latency: timedelta
    queries_per_second: float
    slow_queries: int


@dataclass(frozen=True)
class SystemMetrics:
    load_average: float
    disk_usage: float
    network_latency: timedelta


@dataclass(frozen=True)
class ClusterMetrics:
    """Immutable per-tick snapshot for every role group plus cluster-wide signals."""

    primaries: RoleGroupMetrics
    secondaries: RoleGroupMetrics
    query: QueryMetrics
    system: SystemMetrics
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
