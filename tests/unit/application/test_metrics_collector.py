"""MetricsCollector: role groups, database-derived metrics, fallbacks, system estimates."""

from datetime import datetime, timedelta, timezone

import pytest

from cluster_autoscaler.application.exceptions import MetricsCollectionError
from cluster_autoscaler.application.metrics_collector import (
    CONNECTIONS_QUERY,
    RUNNING_QUERIES_QUERY,
    TRANSACTIONS_QUERY,
    MetricsCollector,
)
from cluster_autoscaler.config.settings import AutoscalerSettings
from cluster_autoscaler.domain.models.metrics import MetricTrend
from cluster_autoscaler.domain.schemas.cluster import ClusterSpec

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def cluster():
    return ClusterSpec(name="graph", namespace="data", auto_scaling={})


def _collector(replica_client, database=None, factory=None):
    return MetricsCollector(
        replica_client=replica_client,
        database_client_factory=factory or (lambda c: database),
        settings=AutoscalerSettings(),
        clock=lambda: NOW,
    )


@pytest.mark.asyncio
async def test_collects_role_group_counts_and_utilisation(cluster, fake_replica_client, fake_database):
    m = await _collector(fake_replica_client, fake_database).collect_metrics(cluster)
    assert m.primaries.total == 3 and m.primaries.healthy == 3
    assert m.secondaries.total == 2 and m.secondaries.healthy == 2
    assert m.primaries.cpu.current == pytest.approx(0.6)
    assert m.primaries.memory.current == pytest.approx(0.7)
    assert m.timestamp == NOW


@pytest.mark.asyncio
async def test_unhealthy_replicas_not_counted(cluster, replica_client_cls, replica_factory, fake_database):
    client = replica_client_cls(
        counts={"primary": 3, "secondary": 0},
        replicas={
            "primary": replica_factory("primary", 2) + replica_factory("primary", 1, ready=False),
        },
    )
    m = await _collector(client, fake_database).collect_metrics(cluster)
    assert m.primaries.healthy == 2
    assert m.primaries.cpu.current == 0.0


@pytest.mark.asyncio
async def test_connection_and_throughput_from_database(cluster, fake_replica_client, database_cls):
    db = database_cls(
        rows={
            CONNECTIONS_QUERY: [{"connectionId": str(i)} for i in range(40)],
            TRANSACTIONS_QUERY: [{"transactionId": str(i)} for i in range(30)],
            RUNNING_QUERIES_QUERY: [],
        }
    )
    m = await _collector(fake_replica_client, db).collect_metrics(cluster)
    assert m.primaries.connections.current == 40.0
    assert m.primaries.connections.previous == pytest.approx(34.0)
    assert m.primaries.connections.trend == MetricTrend.INCREASING
    assert m.primaries.throughput.current == 60.0
    assert m.secondaries.connections is m.primaries.connections
    assert db.closed


@pytest.mark.asyncio
@pytest.mark.parametrize("rows,expected", [(0, 10.0), (3, 15.0), (300, 500.0)])
async def test_throughput_bounds(cluster, fake_replica_client, database_cls, rows, expected):
    db = database_cls(rows={TRANSACTIONS_QUERY: [{"transactionId": str(i)} for i in range(rows)]})
    m = await _collector(fake_replica_client, db).collect_metrics(cluster)
    assert m.primaries.throughput.current == expected


@pytest.mark.asyncio
async def test_empty_connection_list_assumes_minimum(cluster, fake_replica_client, fake_database):
    m = await _collector(fake_replica_client, fake_database).collect_metrics(cluster)
    assert m.primaries.connections.current == 25.0


@pytest.mark.asyncio
async def test_query_metrics_from_running_queries(cluster, fake_replica_client, database_cls):
    db = database_cls(rows={RUNNING_QUERIES_QUERY: [{"runtime": ms} for ms in (100, 300, 200, 2000)]})
    m = await _collector(fake_replica_client, db).collect_metrics(cluster)
    assert m.query.average_latency == timedelta(milliseconds=650)
    assert m.query.p95_latency == timedelta(milliseconds=2000)
    assert m.query.slow_queries == 1
    assert m.query.queries_per_second == 10.0


@pytest.mark.asyncio
async def test_no_running_queries_is_idle(cluster, fake_replica_client, fake_database):
    m = await _collector(fake_replica_client, fake_database).collect_metrics(cluster)
    assert m.query.p95_latency == timedelta(milliseconds=200)
    assert m.query.queries_per_second == 25.0


@pytest.mark.asyncio
async def test_unreachable_database_uses_fallbacks(cluster, fake_replica_client):
    def factory(c):
        raise ConnectionError("no route to host")

    m = await _collector(fake_replica_client, factory=factory).collect_metrics(cluster)
    assert m.primaries.connections.current == 100.0
    assert m.primaries.throughput.current == 50.0
    assert m.query.p95_latency == timedelta(milliseconds=500)
    assert m.query.slow_queries == 5


@pytest.mark.asyncio
async def test_single_failing_query_falls_back_alone(cluster, fake_replica_client, database_cls):
    db = database_cls(
        rows={CONNECTIONS_QUERY: [{"connectionId": "1"}] * 10},
        failing=(TRANSACTIONS_QUERY,),
    )
    m = await _collector(fake_replica_client, db).collect_metrics(cluster)
    assert m.primaries.connections.current == 10.0
    assert m.primaries.throughput.current == 50.0
    assert db.closed


@pytest.mark.asyncio
async def test_unreadable_role_group_raises(cluster, fake_replica_client, fake_database):
    fake_replica_client.fail_reads.add("secondary")
    with pytest.raises(MetricsCollectionError) as exc:
        await _collector(fake_replica_client, fake_database).collect_metrics(cluster)
    assert "secondary" in exc.value.message


@pytest.mark.asyncio
async def test_system_metrics_estimates(cluster, replica_client_cls, replica_factory, fake_database):
    client = replica_client_cls(
        counts={"primary": 2},
        replicas={
            "primary": replica_factory("primary", 2, cpu_request_millis=1000, created_at=NOW - timedelta(days=2)),
        },
    )
    m = await _collector(client, fake_database).collect_metrics(cluster)
    assert m.system.load_average == pytest.approx(0.7)
    assert m.system.disk_usage == pytest.approx(0.4)
    assert m.system.network_latency == timedelta(milliseconds=5)


@pytest.mark.asyncio
async def test_system_metrics_without_healthy_pods(cluster, replica_client_cls, fake_database):
    m = await _collector(replica_client_cls(counts={"primary": 0}), fake_database).collect_metrics(cluster)
    assert m.system.load_average == 0.5
    assert m.system.disk_usage == 0.1


@pytest.mark.asyncio
async def test_system_metrics_fallback_when_pods_unreadable(cluster, fake_replica_client, fake_database):
    fake_replica_client.fail_list_all = True
    m = await _collector(fake_replica_client, fake_database).collect_metrics(cluster)
    assert m.system.load_average == 1.5
    assert m.system.network_latency == timedelta(milliseconds=10)
