"""Collaborator protocols for the autoscaler. Implementations live in infrastructure; tests inject fakes."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol

from cluster_autoscaler.domain.schemas.cluster import ClusterSpec


@dataclass(frozen=True)
class ReplicaInfo:
    """One member of a role group as seen by the orchestration platform."""

    name: str
    role: str
    running: bool
    ready: Optional[bool]  # None when the pod reports no Ready condition
    zone: Optional[str] = None
    cpu_request_millis: int = 0
    memory_request_bytes: int = 0
    created_at: Optional[datetime] = None

    @property
    def healthy(self) -> bool:
        return self.running and self.ready is True


class ReplicaGroupClient(Protocol):
    """Reads and resizes the per-role scalable resource (one StatefulSet per role)."""

    async def get_replica_count(self, namespace: str, cluster: str, role: str) -> int: ...

    async def list_replicas(self, namespace: str, cluster: str, role: Optional[str] = None) -> list[ReplicaInfo]: ...

    async def set_replica_count(self, namespace: str, cluster: str, role: str, replicas: int) -> None: ...


class DatabaseQueryClient(Protocol):
    """Runs status queries against the managed database; rows come back as dicts."""

    async def run(self, query: str) -> list[dict[str, Any]]: ...

    async def close(self) -> None: ...


DatabaseClientFactory = Callable[[ClusterSpec], DatabaseQueryClient]


class CustomMetricSource(Protocol):
    """Instant scalar query against a metrics backend."""

    async def query(self, server_url: str, expr: str) -> float: ...
