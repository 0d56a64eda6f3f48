"""Weighted multi-metric scaling decisions. Deterministic given the snapshot and the custom-metric readings."""

import logging
from datetime import timedelta

from cluster_autoscaler.application.ports import CustomMetricSource
from cluster_autoscaler.domain.exceptions import InvalidMetricConfigError
from cluster_autoscaler.domain.models.decision import ScalingAction, ScalingDecision
from cluster_autoscaler.domain.models.metrics import ClusterMetrics, MetricValue, RoleGroupMetrics
from cluster_autoscaler.domain.schemas.cluster import (
    METRIC_CONNECTION_COUNT,
    METRIC_CPU,
    METRIC_CUSTOM,
    METRIC_MEMORY,
    METRIC_QUERY_LATENCY,
    METRIC_THROUGHPUT,
    AutoScalingMetric,
    RoleScalingConfig,
)
from cluster_autoscaler.infrastructure.prometheus.remote_metric_source import MalformedMetricResponseError

logger = logging.getLogger(__name__)

SCALE_UP_SCORE = 0.8
SCALE_DOWN_SCORE = 0.2
NEUTRAL_SCORE = 0.5
UNDERUSE_FACTOR = 0.5
CUSTOM_UNDERUSE_FACTOR = 0.7


def _percent(v: float) -> str:
    return f"{v * 100:.1f}%"


def _count(v: float) -> str:
    return f"{v:.0f}"


def _rate(v: float) -> str:
    return f"{v:.1f}"


def _millis(v: float) -> str:
    return f"{v:.0f}ms"


def _compare(label: str, current: float, target: float, fmt, trend: str | None = None) -> tuple[float, str]:
    """
    Score one reading against its target. Over target: min(current/target, 1).
    Under half the target: max(0, 1 - current/target). Otherwise neutral with no reason.
    """
    suffix = f" ({trend})" if trend else ""
    if current > target:
        return min(current / target, 1.0), f"{label} {fmt(current)} > {fmt(target)}{suffix}"
    if current < target * UNDERUSE_FACTOR:
        return (
            max(0.0, 1.0 - current / target),
            f"{label} {fmt(current)} < {fmt(target * UNDERUSE_FACTOR)}{suffix}",
        )
    return NEUTRAL_SCORE, ""


def _target(metric: AutoScalingMetric) -> float:
    if metric.target_value is None:
        raise InvalidMetricConfigError(f"Invalid {metric.type} target: {metric.target!r}")
    if metric.target_value <= 0:
        raise InvalidMetricConfigError(f"Invalid {metric.type} target: {metric.target!r} must be positive")
    return metric.target_value


class ScaleDecisionEngine:
    """
    Fuses the configured metrics of one role group into a single decision.
    Scores are in [0, 1]; the weighted mean above 0.8 scales up, below 0.2 scales down,
    always by exactly one replica.
    """

    def __init__(self, custom_metric_source: CustomMetricSource | None = None) -> None:
        self._custom_source = custom_metric_source

    async def calculate_scaling(
        self,
        config: RoleScalingConfig,
        role: RoleGroupMetrics,
        cluster: ClusterMetrics,
    ) -> ScalingDecision:
        if not config.metrics:
            return ScalingDecision.no_action()

        weighted_score = 0.0
        total_weight = 0.0
        reasons: list[str] = []
        for metric in config.metrics:
            score, reason = await self.evaluate_metric(metric, role, cluster)
            weighted_score += score * metric.weight
            total_weight += metric.weight
            if reason:
                reasons.append(reason)

        if total_weight == 0:
            return ScalingDecision.no_action()

        fused = weighted_score / total_weight
        detail = "; ".join(reasons)
        current = role.total

        if fused > SCALE_UP_SCORE:
            return ScalingDecision(
                action=ScalingAction.SCALE_UP,
                target_replicas=min(current + 1, config.max_replicas),
                reason=f"Scale up: {detail} (score: {fused:.2f})",
                confidence=min(fused, 1.0),
            )
        if fused < SCALE_DOWN_SCORE:
            return ScalingDecision(
                action=ScalingAction.SCALE_DOWN,
                target_replicas=max(current - 1, config.min_replicas),
                reason=f"Scale down: {detail} (score: {fused:.2f})",
                confidence=min(1.0 - fused, 1.0),
            )
        return ScalingDecision.no_action(f"score {fused:.2f} within ({SCALE_DOWN_SCORE}, {SCALE_UP_SCORE})")

    async def evaluate_metric(
        self,
        metric: AutoScalingMetric,
        role: RoleGroupMetrics,
        cluster: ClusterMetrics,
    ) -> tuple[float, str]:
        """Score in [0, 1] and a reason. Configuration problems yield a neutral score with a diagnostic reason."""
        try:
            if metric.type == METRIC_CPU:
                return self._evaluate_value("CPU", role.cpu, _target(metric), _percent)
            if metric.type == METRIC_MEMORY:
                return self._evaluate_value("Memory", role.memory, _target(metric), _percent)
            if metric.type == METRIC_QUERY_LATENCY:
                return self._evaluate_latency(cluster.query.p95_latency, _target(metric))
            if metric.type == METRIC_CONNECTION_COUNT:
                return self._evaluate_value("Connections", role.connections, _target(metric), _count)
            if metric.type == METRIC_THROUGHPUT:
                return self._evaluate_value("Throughput", role.throughput, _target(metric), _rate)
            if metric.type == METRIC_CUSTOM:
                return await self._evaluate_custom(metric)
        except InvalidMetricConfigError as e:
            logger.error("invalid_metric_config", extra={"error": e.message})
            return NEUTRAL_SCORE, e.message
        return NEUTRAL_SCORE, ""

    @staticmethod
    def _evaluate_value(label: str, value: MetricValue, target: float, fmt) -> tuple[float, str]:
        return _compare(label, value.current, target, fmt, value.trend.value)

    @staticmethod
    def _evaluate_latency(p95: timedelta, target_ms: float) -> tuple[float, str]:
        return _compare("P95 latency", p95.total_seconds() * 1000.0, target_ms, _millis)

    async def _evaluate_custom(self, metric: AutoScalingMetric) -> tuple[float, str]:
        source = metric.source
        if source is None or source.type != "prometheus":
            return NEUTRAL_SCORE, "custom metric requires Prometheus source configuration"
        if source.prometheus is None or not source.prometheus.query:
            return NEUTRAL_SCORE, "custom metric requires Prometheus query"
        if self._custom_source is None:
            return NEUTRAL_SCORE, "custom metric source not configured"

        target = _target(metric)
        try:
            value = await self._custom_source.query(source.prometheus.server_url, source.prometheus.query)
        except MalformedMetricResponseError as e:
            logger.error("custom_metric_query_failed", extra={"query": source.prometheus.query, "error": e.message})
            return NEUTRAL_SCORE, f"Prometheus query failed: {e.message}"

        if value > target:
            return min(value / target, 1.0), f"Custom metric {value:.2f} > {target:.2f}"
        if value < target * CUSTOM_UNDERUSE_FACTOR:
            return (
                max(0.0, CUSTOM_UNDERUSE_FACTOR - value / target),
                f"Custom metric {value:.2f} < {target * CUSTOM_UNDERUSE_FACTOR:.2f}",
            )
        return NEUTRAL_SCORE, f"Custom metric {value:.2f} within target range"
