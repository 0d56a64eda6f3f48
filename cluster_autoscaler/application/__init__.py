# Application layer: exceptions and collaborator ports. The orchestrator and collector
# are imported from their modules directly (they depend on the scalability layer).

from cluster_autoscaler.application.exceptions import (
    ApplicationError,
    MetricsCollectionError,
    ReconciliationError,
    ReplicaWriteError,
)
from cluster_autoscaler.application.ports import (
    CustomMetricSource,
    DatabaseClientFactory,
    DatabaseQueryClient,
    ReplicaGroupClient,
    ReplicaInfo,
)

__all__ = [
    "ApplicationError",
    "CustomMetricSource",
    "DatabaseClientFactory",
    "DatabaseQueryClient",
    "MetricsCollectionError",
    "ReconciliationError",
    "ReplicaGroupClient",
    "ReplicaInfo",
    "ReplicaWriteError",
]
