"""Request logging middleware."""
import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"

# Probes, plus the status endpoint the editor polls during a pull.
EXCLUDED_PATHS = frozenset({
    "/api/health/live",
    "/api/health/ready",
    "/api/pull-status",
})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the log context and logs each API request.

    Service log events emitted while handling the request carry the
    same ``request_id``, so a pull or deploy can be traced end to end.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id

        if request.url.path not in EXCLUDED_PATHS:
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                query=request.url.query or None,
                status=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

        structlog.contextvars.unbind_contextvars("request_id")
        return response
