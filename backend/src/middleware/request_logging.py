"""Request logging and HTTP metrics middleware."""

import time
import uuid
from typing import Callable

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from shared.logging import bind_context
from shared.metrics import HttpMetrics

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def route_label(request: Request) -> str:
    """Route template of the matched endpoint, to keep metric labels bounded."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "unmatched"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with a correlation id and records HTTP metrics.

    The correlation id is taken from the X-Correlation-ID header when
    present and echoed back on the response.
    """

    def __init__(self, app, metrics: HttpMetrics):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        bind_context(correlation_id=correlation_id)

        method = request.method
        self.metrics.requests_in_progress.labels(method=method).inc()
        start_time = time.perf_counter()

        logger.debug("request_started", method=method, path=request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            duration = time.perf_counter() - start_time
            endpoint = route_label(request)
            self.metrics.requests_total.labels(method=method, endpoint=endpoint, status="500").inc()
            self.metrics.request_duration.labels(method=method, endpoint=endpoint).observe(duration)
            logger.exception("request_failed", method=method, path=request.url.path)
            raise
        finally:
            self.metrics.requests_in_progress.labels(method=method).dec()

        duration = time.perf_counter() - start_time
        endpoint = route_label(request)
        self.metrics.requests_total.labels(
            method=method,
            endpoint=endpoint,
            status=str(response.status_code)
        ).inc()
        self.metrics.request_duration.labels(method=method, endpoint=endpoint).observe(duration)

        response.headers[CORRELATION_HEADER] = correlation_id
        logger.info(
            "request_completed",
            method=method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2)
        )
        return response
