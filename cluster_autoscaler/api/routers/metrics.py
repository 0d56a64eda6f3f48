# cluster_autoscaler/api/routers/metrics.py

from typing import Annotated

from fastapi import APIRouter, Depends

from cluster_autoscaler.api.dependencies import get_metrics_registry
from cluster_autoscaler.observability.metrics import MetricsRegistry

router = APIRouter()


@router.get("/metrics")
async def export_metrics(metrics: Annotated[MetricsRegistry, Depends(get_metrics_registry)]):
    """Counters and latency histograms recorded by the autoscaler."""
    return metrics.export_metrics()
