# cluster_autoscaler/infrastructure/kubernetes/replica_group_client.py

import asyncio
import logging
from typing import Optional

from kubernetes import client, config as k8s_config
from kubernetes.client.rest import ApiException
from kubernetes.utils import parse_quantity

from cluster_autoscaler.application.exceptions import ReplicaWriteError
from cluster_autoscaler.application.ports import ReplicaInfo
from cluster_autoscaler.config.settings import AutoscalerSettings, get_settings

logger = logging.getLogger(__name__)

APP_LABEL = "app.kubernetes.io/name"
INSTANCE_LABEL = "app.kubernetes.io/instance"
COMPONENT_LABEL = "app.kubernetes.io/component"
APP_NAME = "neo4j"
ZONE_LABEL = "topology.kubernetes.io/zone"


def load_kube_config(settings: AutoscalerSettings | None = None) -> None:
    """In-cluster service account when configured, local kubeconfig otherwise."""
    settings = settings or get_settings()
    if settings.kube_in_cluster:
        k8s_config.load_incluster_config()
        logger.info("kube_config_loaded", extra={"reason": "in-cluster"})
    else:
        k8s_config.load_kube_config()
        logger.info("kube_config_loaded", extra={"reason": "kubeconfig"})


def stateful_set_name(cluster: str, role: str) -> str:
    return f"{cluster}-{role}"


def label_selector(cluster: str, role: Optional[str] = None) -> str:
    selector = f"{APP_LABEL}={APP_NAME},{INSTANCE_LABEL}={cluster}"
    if role:
        selector += f",{COMPONENT_LABEL}={role}"
    return selector


def _is_ready(pod) -> Optional[bool]:
    for condition in (pod.status.conditions or []) if pod.status else []:
        if condition.type == "Ready":
            return condition.status == "True"
    return None


def _requests(pod) -> tuple[int, int]:
    """Sum CPU (millicores) and memory (bytes) requests over the pod's containers."""
    cpu_millis = 0
    memory_bytes = 0
    for container in (pod.spec.containers or []) if pod.spec else []:
        requests = (container.resources.requests or {}) if container.resources else {}
        if "cpu" in requests:
            cpu_millis += int(parse_quantity(requests["cpu"]) * 1000)
        if "memory" in requests:
            memory_bytes += int(parse_quantity(requests["memory"]))
    return cpu_millis, memory_bytes


class KubernetesReplicaGroupClient:
    """
    ReplicaGroupClient over the official kubernetes client. One StatefulSet per role,
    named {cluster}-{role}. The client is synchronous; every call runs in a worker thread.
    """

    def __init__(
        self,
        apps_api: client.AppsV1Api | None = None,
        core_api: client.CoreV1Api | None = None,
    ) -> None:
        self.apps_api = apps_api or client.AppsV1Api()
        self.core_api = core_api or client.CoreV1Api()

    async def get_replica_count(self, namespace: str, cluster: str, role: str) -> int:
        sts = await asyncio.to_thread(
            self.apps_api.read_namespaced_stateful_set, stateful_set_name(cluster, role), namespace
        )
        return (sts.spec.replicas or 0) if sts.spec else 0

    async def list_replicas(self, namespace: str, cluster: str, role: Optional[str] = None) -> list[ReplicaInfo]:
        pods = await asyncio.to_thread(
            self.core_api.list_namespaced_pod, namespace, label_selector=label_selector(cluster, role)
        )
        zones: dict[str, Optional[str]] = {}
        replicas = []
        for pod in pods.items:
            node_name = pod.spec.node_name if pod.spec else None
            if node_name and node_name not in zones:
                zones[node_name] = await self._node_zone(node_name)
            cpu_millis, memory_bytes = _requests(pod)
            labels = pod.metadata.labels or {}
            replicas.append(
                ReplicaInfo(
                    name=pod.metadata.name,
                    role=labels.get(COMPONENT_LABEL, role or ""),
                    running=bool(pod.status and pod.status.phase == "Running"),
                    ready=_is_ready(pod),
                    zone=zones.get(node_name) if node_name else None,
                    cpu_request_millis=cpu_millis,
                    memory_request_bytes=memory_bytes,
                    created_at=pod.metadata.creation_timestamp,
                )
            )
        return replicas

    async def set_replica_count(self, namespace: str, cluster: str, role: str, replicas: int) -> None:
        name = stateful_set_name(cluster, role)
        body = {"spec": {"replicas": int(replicas)}}
        try:
            await asyncio.to_thread(self.apps_api.patch_namespaced_stateful_set_scale, name, namespace, body)
        except ApiException as e:
            raise ReplicaWriteError(
                f"failed to scale StatefulSet {namespace}/{name} to {replicas}: {e.status} {e.reason}"
            ) from e
        logger.info("replica_count_written", extra={"namespace": namespace, "to_replicas": replicas})

    async def _node_zone(self, node_name: str) -> Optional[str]:
        """Zone label of the node hosting a pod; None when the node or label is unavailable."""
        try:
            node = await asyncio.to_thread(self.core_api.read_node, node_name)
        except ApiException as e:
            logger.warning("node_zone_unavailable", extra={"status_code": e.status, "error": str(e.reason)})
            return None
        return (node.metadata.labels or {}).get(ZONE_LABEL)
