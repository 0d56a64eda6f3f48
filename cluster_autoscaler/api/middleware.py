"""API middleware: reconcile ID, request log."""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from cluster_autoscaler.core.context import reconcile_id_ctx

logger = logging.getLogger(__name__)

RECONCILE_ID_HEADER = "X-Reconcile-ID"


class ReconcileIdMiddleware(BaseHTTPMiddleware):
    """Generate or preserve the reconcile ID; attach to request.state, response header, and logging context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        reconcile_id = request.headers.get(RECONCILE_ID_HEADER) or str(uuid.uuid4())
        request.state.reconcile_id = reconcile_id
        reconcile_id_ctx.set(reconcile_id)

        response = await call_next(request)
        response.headers[RECONCILE_ID_HEADER] = reconcile_id
        return response


class RequestLogMiddleware(BaseHTTPMiddleware):
    """After response: structured request log (path, method, status_code, duration)."""

    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.monotonic()
        response = await call_next(request)
        logger.info(
            "request_completed",
            extra={
                "action": f"{request.method} {request.url.path}",
                "status_code": response.status_code,
                "value": round((time.monotonic() - started) * 1000, 2),
            },
        )
        return response
