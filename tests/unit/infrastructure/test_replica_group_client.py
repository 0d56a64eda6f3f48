"""KubernetesReplicaGroupClient: StatefulSet reads and scale writes, pod listing with zones and requests."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException

from cluster_autoscaler.application.exceptions import ReplicaWriteError
from cluster_autoscaler.infrastructure.kubernetes.replica_group_client import (
    KubernetesReplicaGroupClient,
    label_selector,
)

CREATED = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _pod(name, node, phase="Running", ready="True", cpu="500m", memory="1Gi", component="secondary"):
    return SimpleNamespace(
        metadata=SimpleNamespace(
            name=name,
            labels={"app.kubernetes.io/component": component},
            creation_timestamp=CREATED,
        ),
        spec=SimpleNamespace(
            node_name=node,
            containers=[SimpleNamespace(resources=SimpleNamespace(requests={"cpu": cpu, "memory": memory}))],
        ),
        status=SimpleNamespace(phase=phase, conditions=[SimpleNamespace(type="Ready", status=ready)]),
    )


def _node(zone=None):
    labels = {"topology.kubernetes.io/zone": zone} if zone else {}
    return SimpleNamespace(metadata=SimpleNamespace(labels=labels))


@pytest.fixture
def apps_api():
    return MagicMock()


@pytest.fixture
def core_api():
    return MagicMock()


@pytest.fixture
def client(apps_api, core_api):
    return KubernetesReplicaGroupClient(apps_api=apps_api, core_api=core_api)


def test_label_selector():
    assert label_selector("graph") == "app.kubernetes.io/name=neo4j,app.kubernetes.io/instance=graph"
    assert label_selector("graph", "primary").endswith(",app.kubernetes.io/component=primary")


@pytest.mark.asyncio
async def test_get_replica_count_reads_role_statefulset(client, apps_api):
    apps_api.read_namespaced_stateful_set.return_value = SimpleNamespace(spec=SimpleNamespace(replicas=3))
    assert await client.get_replica_count("data", "graph", "primary") == 3
    apps_api.read_namespaced_stateful_set.assert_called_once_with("graph-primary", "data")


@pytest.mark.asyncio
async def test_get_replica_count_propagates_api_errors(client, apps_api):
    apps_api.read_namespaced_stateful_set.side_effect = ApiException(status=404, reason="Not Found")
    with pytest.raises(ApiException):
        await client.get_replica_count("data", "graph", "primary")


@pytest.mark.asyncio
async def test_list_replicas_resolves_zones_once_per_node(client, core_api):
    core_api.list_namespaced_pod.return_value = SimpleNamespace(
        items=[
            _pod("graph-secondary-0", "node-1"),
            _pod("graph-secondary-1", "node-1", ready="False"),
            _pod("graph-secondary-2", "node-2", phase="Pending"),
        ]
    )
    core_api.read_node.side_effect = lambda name: _node("zone-a" if name == "node-1" else None)

    replicas = await client.list_replicas("data", "graph", "secondary")

    core_api.list_namespaced_pod.assert_called_once_with("data", label_selector=label_selector("graph", "secondary"))
    assert core_api.read_node.call_count == 2
    assert [r.zone for r in replicas] == ["zone-a", "zone-a", None]
    assert [r.healthy for r in replicas] == [True, False, False]
    first = replicas[0]
    assert first.role == "secondary"
    assert first.cpu_request_millis == 500
    assert first.memory_request_bytes == 1024**3
    assert first.created_at == CREATED


@pytest.mark.asyncio
async def test_list_replicas_tolerates_unreadable_node(client, core_api):
    core_api.list_namespaced_pod.return_value = SimpleNamespace(items=[_pod("graph-primary-0", "node-9")])
    core_api.read_node.side_effect = ApiException(status=403, reason="Forbidden")
    replicas = await client.list_replicas("data", "graph")
    assert replicas[0].zone is None


@pytest.mark.asyncio
async def test_set_replica_count_patches_scale_subresource(client, apps_api):
    await client.set_replica_count("data", "graph", "secondary", 4)
    apps_api.patch_namespaced_stateful_set_scale.assert_called_once_with(
        "graph-secondary", "data", {"spec": {"replicas": 4}}
    )


@pytest.mark.asyncio
async def test_set_replica_count_conflict_raises_write_error(client, apps_api):
    apps_api.patch_namespaced_stateful_set_scale.side_effect = ApiException(status=409, reason="Conflict")
    with pytest.raises(ReplicaWriteError) as exc:
        await client.set_replica_count("data", "graph", "primary", 5)
    assert "409 Conflict" in exc.value.message
