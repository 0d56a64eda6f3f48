# cluster_autoscaler/api/routers/health.py

from fastapi import APIRouter, Request

from cluster_autoscaler.config.settings import get_settings

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Liveness: the process is serving requests."""
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request):
    """Readiness with reconcile ID from request state."""
    settings = get_settings()
    return {
        "status": "ready",
        "reconcile_id": request.state.reconcile_id,
        "environment": settings.environment,
        "version": settings.version,
    }
