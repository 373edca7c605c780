"""Request id and latency logging."""
import logging
import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from ppvgate.core.config import settings
from ppvgate.utils.metrics import http_request_duration_seconds

logger = logging.getLogger("ppvgate.request")


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(settings.request_id_header) or str(uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        http_request_duration_seconds.labels(
            method=request.method, status_code=str(response.status_code)
        ).observe(elapsed)
        logger.info(
            "request_complete",
            extra={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "latency_ms": round(elapsed * 1000.0, 2),
            },
        )
        response.headers[settings.request_id_header] = request_id
        return response
