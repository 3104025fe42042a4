"""
Request/response logging middleware.
"""

import time
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from forge_core import (
    get_logger,
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
    set_correlation_id,
)

logger = get_logger(__name__)

# Paths that would flood the logs
QUIET_PATHS = ("/health", "/health/live", "/health/ready", "/metrics")


def _endpoint(request: Request) -> str:
    """Route template rather than the raw path, to keep label cardinality bounded."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging and metrics.

    Features:
    - Correlation ID injection
    - Request/response logging
    - Request duration tracking
    - Prometheus metrics
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid4())
        set_correlation_id(correlation_id)

        method = request.method
        path = request.url.path
        client_ip = request.client.host if request.client else "unknown"
        skip_logging = path in QUIET_PATHS or path.startswith("/workspace/")

        http_requests_in_progress.labels(method=method, endpoint=path).inc()
        start_time = time.perf_counter()

        if not skip_logging:
            logger.info(
                "Request started",
                method=method,
                path=path,
                client_ip=client_ip,
                correlation_id=correlation_id,
            )

        try:
            response = await call_next(request)
            duration = time.perf_counter() - start_time
            endpoint = _endpoint(request)

            response.headers["X-Correlation-ID"] = correlation_id

            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status_code=response.status_code,
            ).inc()
            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint,
            ).observe(duration)

            if not skip_logging:
                logger.info(
                    "Request completed",
                    method=method,
                    path=path,
                    status=response.status_code,
                    duration_ms=round(duration * 1000, 2),
                    correlation_id=correlation_id,
                )

            return response

        except Exception as e:
            duration = time.perf_counter() - start_time
            endpoint = _endpoint(request)

            http_requests_total.labels(
                method=method,
                endpoint=endpoint,
                status_code=500,
            ).inc()
            http_request_duration_seconds.labels(
                method=method,
                endpoint=endpoint,
            ).observe(duration)

            logger.error(
                "Request failed",
                method=method,
                path=path,
                error=str(e),
                duration_ms=round(duration * 1000, 2),
                correlation_id=correlation_id,
            )
            raise

        finally:
            http_requests_in_progress.labels(method=method, endpoint=path).dec()
