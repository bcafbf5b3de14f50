"""
Middleware configuration for the application.
Includes Correlation ID setup and request logging middleware.
"""

import time
from typing import Callable

import structlog
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

# Static files and health probes would drown the log
QUIET_PATH_PREFIXES = ("/uploads", "/health")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log each request with method, path, status and timing."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path.startswith(QUIET_PATH_PREFIXES):
            return await call_next(request)

        start_time = time.perf_counter()
        structlog.contextvars.bind_contextvars(method=request.method, path=request.url.path)

        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                status_code=response.status_code,
                client_ip=request.client.host if request.client else "unknown",
                process_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return response
        except Exception:
            logger.exception(
                "Request failed",
                process_time_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("method", "path")


def setup_middleware(app):
    """Setup all middleware for the application."""
    # Added last so it runs first and the request id exists for the logger
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name="X-Request-ID",
        update_request_header=True,
    )
