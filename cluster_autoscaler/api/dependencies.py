"""FastAPI dependency injection: metrics registry, replica client, metric source, AutoScaler."""

from typing import Annotated

from fastapi import Depends

from cluster_autoscaler.application.autoscaler import AutoScaler
from cluster_autoscaler.application.metrics_collector import MetricsCollector
from cluster_autoscaler.application.ports import DatabaseClientFactory, ReplicaGroupClient
from cluster_autoscaler.config.settings import AutoscalerSettings, get_settings
from cluster_autoscaler.infrastructure.kubernetes.replica_group_client import (
    KubernetesReplicaGroupClient,
    load_kube_config,
)
from cluster_autoscaler.infrastructure.neo4j.query_client import neo4j_client_factory
from cluster_autoscaler.infrastructure.prometheus.remote_metric_source import RemoteMetricSource
from cluster_autoscaler.observability.metrics import MetricsRegistry
from cluster_autoscaler.scalability.decision_engine import ScaleDecisionEngine

_metrics_registry: MetricsRegistry | None = None
_replica_client: KubernetesReplicaGroupClient | None = None


def get_metrics_registry() -> MetricsRegistry:
    """Return singleton metrics registry."""
    global _metrics_registry
    if _metrics_registry is None:
        _metrics_registry = MetricsRegistry()
    return _metrics_registry


def get_replica_client() -> ReplicaGroupClient:
    """Return singleton Kubernetes replica-group client; loads kube config on first use."""
    global _replica_client
    if _replica_client is None:
        load_kube_config(get_settings())
        _replica_client = KubernetesReplicaGroupClient()
    return _replica_client


def get_database_client_factory() -> DatabaseClientFactory:
    return neo4j_client_factory(get_settings())


def get_autoscaler(
    replica_client: Annotated[ReplicaGroupClient, Depends(get_replica_client)],
    database_client_factory: Annotated[DatabaseClientFactory, Depends(get_database_client_factory)],
    metrics: Annotated[MetricsRegistry, Depends(get_metrics_registry)],
) -> AutoScaler:
    """Build AutoScaler with injected replica client, collector, decision engine and registry."""
    settings: AutoscalerSettings = get_settings()
    collector = MetricsCollector(
        replica_client=replica_client,
        database_client_factory=database_client_factory,
        settings=settings,
    )
    engine = ScaleDecisionEngine(custom_metric_source=RemoteMetricSource(settings=settings, metrics=metrics))
    return AutoScaler(
        replica_client=replica_client,
        metrics_collector=collector,
        decision_engine=engine,
        metrics=metrics if settings.enable_metrics else None,
    )
