"""
Autoscaling orchestrator: one reconciliation pass per call.

Flow: collect metrics once, then primaries before secondaries: decision, quorum
rounding, bounds, topology check, zone-aware spread, idempotent write. The
secondary topology check uses the primary target already decided in this pass.
Per-role failures are aggregated into ReconciliationError after both roles run;
nothing is rolled back or retried within the pass.
"""

import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from cluster_autoscaler.application.exceptions import ReconciliationError
from cluster_autoscaler.application.metrics_collector import MetricsCollector
from cluster_autoscaler.application.ports import ReplicaGroupClient
from cluster_autoscaler.core.context import cluster_ctx, reconcile_id_ctx, role_ctx
from cluster_autoscaler.domain.exceptions import QuorumProtectionError, TopologyViolationError
from cluster_autoscaler.domain.models.decision import ScalingAction, ScalingDecision
from cluster_autoscaler.domain.models.metrics import ClusterMetrics
from cluster_autoscaler.domain.schemas.cluster import (
    ROLE_PRIMARY,
    ROLE_SECONDARY,
    ClusterSpec,
)
from cluster_autoscaler.observability.metrics import MetricsRegistry
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
)

logger = logging.getLogger(__name__)


class ScalingStatus(str, Enum):
    DISABLED = "disabled"
    SKIPPED = "skipped"  # safety constraint blocked the change
    NO_ACTION = "no_action"
    UNCHANGED = "unchanged"  # target equals the stored replica count; no write
    APPLIED = "applied"
    FAILED = "failed"


@dataclass
class RoleScalingOutcome:
    role: str
    status: ScalingStatus
    reason: str = ""
    decision: Optional[ScalingDecision] = None
    previous_replicas: Optional[int] = None
    target_replicas: Optional[int] = None
    zone_distribution: Optional[dict[str, int]] = None


@dataclass
class ReconcileResult:
    cluster: str
    namespace: str
    outcomes: list[RoleScalingOutcome] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def outcome(self, role: str) -> Optional[RoleScalingOutcome]:
        for o in self.outcomes:
            if o.role == role:
                return o
        return None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class AutoScaler:
    """
    Drives one reconciliation pass for a cluster. The only component with side effects:
    reads and writes the per-role replica count through the injected ReplicaGroupClient.
    """

    def __init__(
        self,
        replica_client: ReplicaGroupClient,
        metrics_collector: MetricsCollector,
        decision_engine: ScaleDecisionEngine,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._replicas = replica_client
        self._collector = metrics_collector
        self._engine = decision_engine
        self._metrics = metrics

    async def reconcile(self, cluster: ClusterSpec) -> ReconcileResult:
        """
        Run one pass. Returns the per-role outcomes; raises MetricsCollectionError when the
        role groups cannot be read, ReconciliationError when any role group failed.
        """
        result = ReconcileResult(cluster=cluster.name, namespace=cluster.namespace)
        if not cluster.autoscaling_enabled:
            logger.info("autoscaling_disabled", extra={"namespace": cluster.namespace})
            return result

        cluster_token = cluster_ctx.set(cluster.name)
        reconcile_token = None
        if reconcile_id_ctx.get() is None:
            reconcile_token = reconcile_id_ctx.set(str(uuid.uuid4()))
        started = time.monotonic()
        try:
            metrics = await self._collector.collect_metrics(cluster)
            errors: dict[str, Exception] = {}

            primary_target = metrics.primaries.total
            primary = await self._run_role(cluster, ROLE_PRIMARY, metrics, primary_target, errors)
            if primary.status in (ScalingStatus.APPLIED, ScalingStatus.UNCHANGED):
                primary_target = primary.target_replicas
            result.outcomes.append(primary)
            result.outcomes.append(
                await self._run_role(cluster, ROLE_SECONDARY, metrics, primary_target, errors)
            )

            if errors:
                raise ReconciliationError(errors, result)
            logger.info("autoscaling_reconciled", extra={"namespace": cluster.namespace})
            return result
        finally:
            if self._metrics:
                self._metrics.observe_latency(
                    "autoscaler_reconcile_latency", (time.monotonic() - started) * 1000, cluster=cluster.name
                )
            if reconcile_token is not None:
                reconcile_id_ctx.reset(reconcile_token)
            cluster_ctx.reset(cluster_token)

    async def _run_role(
        self,
        cluster: ClusterSpec,
        role: str,
        metrics: ClusterMetrics,
        primary_target: int,
        errors: dict[str, Exception],
    ) -> RoleScalingOutcome:
        token = role_ctx.set(role)
        try:
            if role == ROLE_PRIMARY:
                outcome = await self._scale_primaries(cluster, metrics)
            else:
                outcome = await self._scale_secondaries(cluster, metrics, primary_target)
        except Exception as e:
            logger.error("autoscaling_role_failed", extra={"namespace": cluster.namespace, "error": str(e)})
            errors[role] = e
            outcome = RoleScalingOutcome(role=role, status=ScalingStatus.FAILED, reason=str(e))
        finally:
            role_ctx.reset(token)
        self._record(cluster.name, outcome)
        return outcome

    async def _scale_primaries(self, cluster: ClusterSpec, metrics: ClusterMetrics) -> RoleScalingOutcome:
        config = cluster.role_config(ROLE_PRIMARY)
        if config is None or not config.enabled:
            return RoleScalingOutcome(role=ROLE_PRIMARY, status=ScalingStatus.DISABLED)

        try:
            validate_quorum_protection(config.quorum_protection, metrics.primaries.healthy)
        except QuorumProtectionError as e:
            logger.info("quorum_protection_blocked_scaling", extra={"reason": e.message})
            return RoleScalingOutcome(role=ROLE_PRIMARY, status=ScalingStatus.SKIPPED, reason=e.message)

        decision = await self._engine.calculate_scaling(config, metrics.primaries, metrics)
        if decision.action == ScalingAction.NO_ACTION:
            return RoleScalingOutcome(
                role=ROLE_PRIMARY, status=ScalingStatus.NO_ACTION, reason=decision.reason, decision=decision
            )

        target = decision.target_replicas
        if not config.allow_quorum_break:
            target = ensure_odd_replicas(target, config.min_replicas, config.max_replicas)
        target = clamp_replicas(target, config.min_replicas, config.max_replicas)

        try:
            validate_cluster_topology(target, metrics.secondaries.total)
        except TopologyViolationError as e:
            logger.info("topology_blocked_scaling", extra={"reason": e.message, "target_replicas": target})
            return RoleScalingOutcome(
                role=ROLE_PRIMARY, status=ScalingStatus.SKIPPED, reason=e.message, decision=decision
            )

        return await self._apply(cluster, ROLE_PRIMARY, target, decision)

    async def _scale_secondaries(
        self,
        cluster: ClusterSpec,
        metrics: ClusterMetrics,
        primary_target: int,
    ) -> RoleScalingOutcome:
        config = cluster.role_config(ROLE_SECONDARY)
        if config is None or not config.enabled:
            return RoleScalingOutcome(role=ROLE_SECONDARY, status=ScalingStatus.DISABLED)

        decision = await self._engine.calculate_scaling(config, metrics.secondaries, metrics)
        if decision.action == ScalingAction.NO_ACTION:
            return RoleScalingOutcome(
                role=ROLE_SECONDARY, status=ScalingStatus.NO_ACTION, reason=decision.reason, decision=decision
            )

        target = clamp_replicas(decision.target_replicas, config.min_replicas, config.max_replicas)

        try:
            validate_cluster_topology(primary_target, target)
        except TopologyViolationError as e:
            logger.info("topology_blocked_scaling", extra={"reason": e.message, "target_replicas": target})
            return RoleScalingOutcome(
                role=ROLE_SECONDARY, status=ScalingStatus.SKIPPED, reason=e.message, decision=decision
            )

        distribution = None
        if config.zone_aware is not None and config.zone_aware.enabled:
            replicas = await self._replicas.list_replicas(cluster.namespace, cluster.name, ROLE_SECONDARY)
            current = current_zone_distribution(r.zone for r in replicas)
            distribution = calculate_target_zone_distribution(target, current, config.zone_aware) or None
            if distribution:
                for zone, count in distribution.items():
                    if current.get(zone, 0) != count:
                        logger.info(
                            "zone_aware_scaling",
                            extra={"zone": zone, "from_replicas": current.get(zone, 0), "to_replicas": count},
                        )
                target = sum(distribution.values())
                reason = self._zone_floor_violation(target, metrics.secondaries.total, config.max_replicas)
                if reason:
                    logger.info("zone_floor_blocked_scaling", extra={"reason": reason, "target_replicas": target})
                    return RoleScalingOutcome(
                        role=ROLE_SECONDARY,
                        status=ScalingStatus.SKIPPED,
                        reason=reason,
                        decision=decision,
                        target_replicas=target,
                        zone_distribution=distribution,
                    )

        return await self._apply(cluster, ROLE_SECONDARY, target, decision, distribution)

    @staticmethod
    def _zone_floor_violation(target: int, current: int, max_replicas: int) -> str:
        """The per-zone floor may lift the count above the decided target, but never past max or by more than one step."""
        if target > max_replicas:
            return f"zone floor requires {target} replicas, above max_replicas {max_replicas}"
        if abs(target - current) > 1:
            return f"zone floor requires {target} replicas, more than one step from {current}"
        return ""

    async def _apply(
        self,
        cluster: ClusterSpec,
        role: str,
        target: int,
        decision: ScalingDecision,
        distribution: dict[str, int] | None = None,
    ) -> RoleScalingOutcome:
        """Write the target unless it equals the stored replica count."""
        current = await self._replicas.get_replica_count(cluster.namespace, cluster.name, role)
        outcome = RoleScalingOutcome(
            role=role,
            status=ScalingStatus.UNCHANGED,
            reason=decision.reason,
            decision=decision,
            previous_replicas=current,
            target_replicas=target,
            zone_distribution=distribution,
        )
        if current == target:
            return outcome

        logger.info(
            "scaling_applied",
            extra={
                "namespace": cluster.namespace,
                "action": decision.action.value,
                "from_replicas": current,
                "to_replicas": target,
                "reason": decision.reason,
            },
        )
        await self._replicas.set_replica_count(cluster.namespace, cluster.name, role, target)
        outcome.status = ScalingStatus.APPLIED
        return outcome

    def _record(self, cluster: str, outcome: RoleScalingOutcome) -> None:
        if not self._metrics:
            return
        if outcome.decision is not None:
            self._metrics.increment(
                "autoscaler_decisions_total", 1, cluster=cluster, role=outcome.role,
                category=outcome.decision.action.value,
            )
        if outcome.status == ScalingStatus.SKIPPED:
            self._metrics.increment("autoscaler_skips_total", 1, cluster=cluster, role=outcome.role)
        elif outcome.status == ScalingStatus.APPLIED:
            self._metrics.increment("autoscaler_writes_total", 1, cluster=cluster, role=outcome.role)
        elif outcome.status == ScalingStatus.FAILED:
            self._metrics.increment("autoscaler_write_failures_total", 1, cluster=cluster, role=outcome.role)
