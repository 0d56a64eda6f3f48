"""Fixtures for application tests: in-memory replica groups, scripted database client, snapshot builders."""

from datetime import timedelta
from typing import Any, Optional

import pytest

from cluster_autoscaler.application.ports import ReplicaInfo
from cluster_autoscaler.domain.models.metrics import (
    ClusterMetrics,
    MetricValue,
    QueryMetrics,
    RoleGroupMetrics,
    SystemMetrics,
)


class FakeReplicaClient:
    """In-memory StatefulSets and pods keyed by role. Records every write."""

    def __init__(self, counts: dict[str, int] | None = None, replicas: dict[str, list[ReplicaInfo]] | None = None):
        self.counts = dict(counts or {})
        self.replicas = dict(replicas or {})
        self.writes: list[tuple[str, int]] = []
        self.fail_reads: set[str] = set()
        self.fail_writes: dict[str, Exception] = {}
        self.fail_list_all = False

    async def get_replica_count(self, namespace: str, cluster: str, role: str) -> int:
        if role in self.fail_reads:
            raise RuntimeError(f"statefulset {cluster}-{role} not found")
        return self.counts.get(role, 0)

    async def list_replicas(self, namespace: str, cluster: str, role: Optional[str] = None) -> list[ReplicaInfo]:
        if role is None:
            if self.fail_list_all:
                raise RuntimeError("pods unavailable")
            return [r for rs in self.replicas.values() for r in rs]
        return list(self.replicas.get(role, []))

    async def set_replica_count(self, namespace: str, cluster: str, role: str, replicas: int) -> None:
        if role in self.fail_writes:
            raise self.fail_writes[role]
        self.writes.append((role, replicas))
        self.counts[role] = replicas


class FakeDatabase:
    """Returns scripted rows per query prefix; raises for queries listed in `failing`."""

    def __init__(self, rows: dict[str, list[dict[str, Any]]] | None = None, failing: tuple[str, ...] = ()):
        self.rows = rows or {}
        self.failing = failing
        self.queries: list[str] = []
        self.closed = False

    async def run(self, query: str) -> list[dict[str, Any]]:
        self.queries.append(query)
        for prefix in self.failing:
            if query.startswith(prefix):
                raise ConnectionError("database unavailable")
        for prefix, rows in self.rows.items():
            if query.startswith(prefix):
                return rows
        return []

    async def close(self) -> None:
        self.closed = True


def make_replicas(role: str, count: int, zones: list[str] | None = None, **kwargs) -> list[ReplicaInfo]:
    zones = zones or [None] * count
    return [
        ReplicaInfo(
            name=f"graph-{role}-{i}",
            role=role,
            running=kwargs.get("running", True),
            ready=kwargs.get("ready", True),
            zone=zones[i % len(zones)],
            cpu_request_millis=kwargs.get("cpu_request_millis", 0),
            memory_request_bytes=kwargs.get("memory_request_bytes", 0),
            created_at=kwargs.get("created_at"),
        )
        for i in range(count)
    ]


def make_role_metrics(total: int, healthy: int | None = None) -> RoleGroupMetrics:
    idle = MetricValue.idle()
    return RoleGroupMetrics(
        total=total,
        healthy=total if healthy is None else healthy,
        cpu=MetricValue.utilization(0.6),
        memory=MetricValue.utilization(0.6),
        connections=idle,
        throughput=idle,
    )


def make_cluster_metrics(
    primaries: int = 3,
    secondaries: int = 2,
    healthy_primaries: int | None = None,
) -> ClusterMetrics:
    return ClusterMetrics(
        primaries=make_role_metrics(primaries, healthy_primaries),
        secondaries=make_role_metrics(secondaries),
        query=QueryMetrics(timedelta(milliseconds=50), timedelta(milliseconds=200), 25.0, 0),
        system=SystemMetrics(0.5, 0.1, timedelta(milliseconds=5)),
    )


@pytest.fixture
def replica_factory():
    return make_replicas


@pytest.fixture
def cluster_metrics_factory():
    return make_cluster_metrics


@pytest.fixture
def fake_replica_client():
    return FakeReplicaClient(
        counts={"primary": 3, "secondary": 2},
        replicas={
            "primary": make_replicas("primary", 3, cpu_request_millis=1000, memory_request_bytes=2 * 1024**3),
            "secondary": make_replicas("secondary", 2, cpu_request_millis=500, memory_request_bytes=1024**3),
        },
    )


@pytest.fixture
def fake_database():
    return FakeDatabase()


@pytest.fixture
def replica_client_cls():
    return FakeReplicaClient


@pytest.fixture
def database_cls():
    return FakeDatabase
