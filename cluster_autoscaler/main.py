# cluster_autoscaler/main.py

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from cluster_autoscaler.api.middleware import ReconcileIdMiddleware, RequestLogMiddleware
from cluster_autoscaler.api.routers import autoscaling, health, metrics
from cluster_autoscaler.application.exceptions import ApplicationError
from cluster_autoscaler.config.logging import configure_logging
from cluster_autoscaler.config.settings import get_settings
from cluster_autoscaler.domain.exceptions import DomainError

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    debug=settings.debug,
)

# Middleware order: last added runs first (outermost). Request flow: ReconcileId -> RequestLog.
app.add_middleware(RequestLogMiddleware)
app.add_middleware(ReconcileIdMiddleware)


@app.exception_handler(DomainError)
async def domain_error_handler(request, exc: DomainError):
    return JSONResponse(status_code=400, content={"detail": exc.message})


@app.exception_handler(ApplicationError)
async def application_error_handler(request, exc: ApplicationError):
    return JSONResponse(status_code=500, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unexpected_error_handler(request, exc: Exception):
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Routers: /healthz, /readyz, /metrics, /autoscaling
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(autoscaling.router, prefix="/autoscaling")
