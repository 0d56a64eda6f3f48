"""Autoscaling API router: POST /autoscaling/reconcile runs one pass for the posted cluster."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from cluster_autoscaler.api.dependencies import get_autoscaler
from cluster_autoscaler.application.autoscaler import AutoScaler
from cluster_autoscaler.application.exceptions import MetricsCollectionError, ReconciliationError
from cluster_autoscaler.domain.schemas.cluster import ClusterSpec

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/reconcile")
async def reconcile(
    body: ClusterSpec,
    autoscaler: Annotated[AutoScaler, Depends(get_autoscaler)],
):
    """Reconcile once. 502 with per-role errors when a role group failed; 503 when role groups are unreadable."""
    try:
        result = await autoscaler.reconcile(body)
    except ReconciliationError as e:
        return JSONResponse(
            status_code=502,
            content=jsonable_encoder(
                {
                    "detail": e.message,
                    "errors": {role: str(err) for role, err in e.errors.items()},
                    "result": e.result.to_dict() if e.result is not None else None,
                }
            ),
        )
    except MetricsCollectionError as e:
        return JSONResponse(status_code=503, content={"detail": e.message})
    return jsonable_encoder(result.to_dict())
