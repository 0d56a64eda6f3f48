"""
Per-tick telemetry acquisition for a cluster's role groups.

Only the cluster's own managed resources are mandatory: failing to read a role
group's StatefulSet or pods raises MetricsCollectionError. Database and system
telemetry always resolve, using documented fallback values when unreachable, so
the control loop keeps running in degraded mode.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from cluster_autoscaler.application.exceptions import MetricsCollectionError
from cluster_autoscaler.application.ports import (
    DatabaseClientFactory,
    DatabaseQueryClient,
    ReplicaGroupClient,
    ReplicaInfo,
)
from cluster_autoscaler.config.settings import AutoscalerSettings, get_settings
from cluster_autoscaler.domain.models.metrics import (
    ClusterMetrics,
    MetricTrend,
    MetricValue,
    QueryMetrics,
    RoleGroupMetrics,
    SystemMetrics,
)
from cluster_autoscaler.domain.schemas.cluster import ROLE_PRIMARY, ROLE_SECONDARY, ClusterSpec

logger = logging.getLogger(__name__)

CONNECTIONS_QUERY = (
    "CALL dbms.listConnections() "
    "YIELD connectionId, connector, username, userAgent, serverAddress, clientAddress"
)
TRANSACTIONS_QUERY = "SHOW TRANSACTIONS YIELD transactionId, currentQuery, status, startTime"
RUNNING_QUERIES_QUERY = (
    "SHOW TRANSACTIONS YIELD transactionId, currentQuery, status, elapsedTime "
    "RETURN transactionId, currentQuery, status, elapsedTime.milliseconds AS runtime"
)

UTILIZATION_THRESHOLD = 0.8
CONNECTION_THRESHOLD = 500.0
THROUGHPUT_THRESHOLD = 200.0

MIN_EXPECTED_CONNECTIONS = 25
IDLE_THROUGHPUT = 10.0
MIN_THROUGHPUT = 15.0
MAX_THROUGHPUT = 500.0
QUERIES_PER_TRANSACTION = 2.0
QPS_PER_RUNNING_QUERY = 2.5
SLOW_QUERY_MS = 1000.0
MAX_QUERY_ROWS = 100

FALLBACK_CONNECTIONS = MetricValue(
    current=100.0, previous=80.0, trend=MetricTrend.INCREASING, threshold=CONNECTION_THRESHOLD
)
FALLBACK_THROUGHPUT = MetricValue(
    current=50.0, previous=45.0, trend=MetricTrend.INCREASING, threshold=THROUGHPUT_THRESHOLD
)
FALLBACK_QUERY_METRICS = QueryMetrics(
    average_latency=timedelta(milliseconds=100),
    p95_latency=timedelta(milliseconds=500),
    queries_per_second=150.0,
    slow_queries=5,
)
IDLE_QUERY_METRICS = QueryMetrics(
    average_latency=timedelta(milliseconds=50),
    p95_latency=timedelta(milliseconds=200),
    queries_per_second=25.0,
    slow_queries=0,
)
FALLBACK_SYSTEM_METRICS = SystemMetrics(
    load_average=1.5, disk_usage=0.6, network_latency=timedelta(milliseconds=10)
)
IDLE_SYSTEM_METRICS = SystemMetrics(
    load_average=0.5, disk_usage=0.1, network_latency=timedelta(milliseconds=5)
)


def _percentile(sorted_values: list[float], pct: float) -> float:
    """Nearest-rank percentile of an ascending list."""
    rank = max(1, math.ceil(pct * len(sorted_values)))
    return sorted_values[rank - 1]


class MetricsCollector:
    """
    Builds a fresh ClusterMetrics snapshot for one cluster. Collaborators are injected;
    no state is kept between calls.
    """

    def __init__(
        self,
        replica_client: ReplicaGroupClient,
        database_client_factory: DatabaseClientFactory,
        settings: AutoscalerSettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._replicas = replica_client
        self._database_factory = database_client_factory
        self._settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def collect_metrics(self, cluster: ClusterSpec) -> ClusterMetrics:
        """Collect role-group, query and system metrics. Raises MetricsCollectionError only for unreadable role groups."""
        primary_total, primary_replicas = await self._read_role_group(cluster, ROLE_PRIMARY)
        secondary_total, secondary_replicas = await self._read_role_group(cluster, ROLE_SECONDARY)

        database = self._open_database(cluster)
        try:
            connections = await self._connection_metric(database)
            throughput = await self._throughput_metric(database)
            query = await self._query_metrics(database)
        finally:
            if database is not None:
                await self._close_database(database)

        return ClusterMetrics(
            primaries=self._role_metrics(primary_total, primary_replicas, connections, throughput),
            secondaries=self._role_metrics(secondary_total, secondary_replicas, connections, throughput),
            query=query,
            system=await self._system_metrics(cluster),
            timestamp=self._clock(),
        )

    # ------------------------------------------------------------------
    # Role groups
    # ------------------------------------------------------------------

    async def _read_role_group(self, cluster: ClusterSpec, role: str) -> tuple[int, list[ReplicaInfo]]:
        try:
            total = await self._replicas.get_replica_count(cluster.namespace, cluster.name, role)
            replicas = await self._replicas.list_replicas(cluster.namespace, cluster.name, role)
        except Exception as e:
            raise MetricsCollectionError(f"failed to read {role} replica group of {cluster.name}: {e}") from e
        return total, replicas

    def _role_metrics(
        self,
        total: int,
        replicas: list[ReplicaInfo],
        connections: MetricValue,
        throughput: MetricValue,
    ) -> RoleGroupMetrics:
        healthy = [r for r in replicas if r.healthy]
        return RoleGroupMetrics(
            total=total,
            healthy=len(healthy),
            cpu=self._resource_metric(
                [r.cpu_request_millis for r in healthy], self._settings.cpu_usage_estimate
            ),
            memory=self._resource_metric(
                [r.memory_request_bytes for r in healthy], self._settings.memory_usage_estimate
            ),
            connections=connections,
            throughput=throughput,
        )

    @staticmethod
    def _resource_metric(requests: list[int], usage_estimate: float) -> MetricValue:
        """Estimated utilisation = estimated usage / requests over healthy replicas; 0.0 without requests."""
        total_requests = sum(requests)
        if total_requests <= 0:
            return MetricValue.idle(UTILIZATION_THRESHOLD)
        estimated_usage = sum(r * usage_estimate for r in requests)
        return MetricValue.utilization(estimated_usage / total_requests, UTILIZATION_THRESHOLD)

    # ------------------------------------------------------------------
    # Database-derived metrics
    # ------------------------------------------------------------------

    def _open_database(self, cluster: ClusterSpec) -> Optional[DatabaseQueryClient]:
        try:
            return self._database_factory(cluster)
        except Exception as e:
            logger.debug("database_client_unavailable", extra={"error": str(e)})
            return None

    async def _close_database(self, database: DatabaseQueryClient) -> None:
        try:
            await database.close()
        except Exception as e:
            logger.error("database_client_close_failed", extra={"error": str(e)})

    async def _run(self, database: Optional[DatabaseQueryClient], query: str) -> Optional[list[dict[str, Any]]]:
        if database is None:
            return None
        try:
            return await database.run(query)
        except Exception as e:
            logger.debug("database_query_failed", extra={"query": query, "error": str(e)})
            return None

    async def _connection_metric(self, database: Optional[DatabaseQueryClient]) -> MetricValue:
        rows = await self._run(database, CONNECTIONS_QUERY)
        if rows is None:
            return FALLBACK_CONNECTIONS
        count = len(rows) or MIN_EXPECTED_CONNECTIONS
        return MetricValue.observe(float(count), count * 0.85, CONNECTION_THRESHOLD)

    async def _throughput_metric(self, database: Optional[DatabaseQueryClient]) -> MetricValue:
        rows = await self._run(database, TRANSACTIONS_QUERY)
        if rows is None:
            return FALLBACK_THROUGHPUT
        if not rows:
            throughput = IDLE_THROUGHPUT
        else:
            throughput = min(max(len(rows) * QUERIES_PER_TRANSACTION, MIN_THROUGHPUT), MAX_THROUGHPUT)
        return MetricValue.observe(
            throughput, throughput * 0.9, THROUGHPUT_THRESHOLD, up_ratio=1.15, down_ratio=0.85
        )

    async def _query_metrics(self, database: Optional[DatabaseQueryClient]) -> QueryMetrics:
        rows = await self._run(database, RUNNING_QUERIES_QUERY)
        if rows is None:
            return FALLBACK_QUERY_METRICS
        runtimes: list[float] = []
        for row in rows[:MAX_QUERY_ROWS]:
            try:
                runtimes.append(max(0.0, float(row.get("runtime"))))
            except (TypeError, ValueError):
                continue
        if not runtimes:
            return IDLE_QUERY_METRICS
        runtimes.sort()
        return QueryMetrics(
            average_latency=timedelta(milliseconds=sum(runtimes) / len(runtimes)),
            p95_latency=timedelta(milliseconds=_percentile(runtimes, 0.95)),
            queries_per_second=len(rows) * QPS_PER_RUNNING_QUERY,
            slow_queries=sum(1 for r in runtimes if r > SLOW_QUERY_MS),
        )

    # ------------------------------------------------------------------
    # System metrics
    # ------------------------------------------------------------------

    async def _system_metrics(self, cluster: ClusterSpec) -> SystemMetrics:
        try:
            pods = await self._replicas.list_replicas(cluster.namespace, cluster.name, None)
        except Exception as e:
            logger.debug("system_metrics_unavailable", extra={"error": str(e)})
            return FALLBACK_SYSTEM_METRICS
        healthy = [p for p in pods if p.healthy]
        if not healthy:
            return IDLE_SYSTEM_METRICS
        now = self._clock()
        load = sum(self._estimate_load(p) for p in healthy) / len(healthy)
        disk = sum(self._estimate_disk_usage(p, now) for p in healthy) / len(healthy)
        latency = sum((self._estimate_network_latency(p) for p in healthy), timedelta()) / len(healthy)
        return SystemMetrics(load_average=load, disk_usage=disk, network_latency=latency)

    @staticmethod
    def _estimate_load(pod: ReplicaInfo) -> float:
        if pod.cpu_request_millis > 0:
            return pod.cpu_request_millis / 1000.0 * 0.7
        return 0.8

    @staticmethod
    def _estimate_disk_usage(pod: ReplicaInfo, now: datetime) -> float:
        if pod.created_at is None:
            return 0.6
        age = now - pod.created_at
        if age < timedelta(days=1):
            return 0.2
        if age < timedelta(days=7):
            return 0.4
        return 0.6

    @staticmethod
    def _estimate_network_latency(pod: ReplicaInfo) -> timedelta:
        if pod.ready is None:
            return timedelta(milliseconds=15)
        return timedelta(milliseconds=5 if pod.ready else 50)
