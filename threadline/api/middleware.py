"""
Request tracing & security middleware
"""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from threadline.config.settings import settings

logger = logging.getLogger(__name__)

# Context variables for request tracing
correlation_id_context: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

SLOW_REQUEST_SECONDS = 30.0


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from context"""
    return correlation_id_context.get()


def get_request_id() -> Optional[str]:
    """Get the current request ID from context"""
    return request_id_context.get()


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_context.set(correlation_id)


def set_request_id(request_id: str) -> None:
    request_id_context.set(request_id)


class SecurityMiddleware(BaseHTTPMiddleware):
    """Request size limits and production security headers"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if (
            content_length
            and content_length.isdigit()
            and int(content_length) > settings.max_request_size
        ):
            client_host = request.client.host if request.client else "unknown"
            logger.warning(
                f"Request too large: {content_length} bytes from {client_host}"
            )
            return JSONResponse(
                status_code=413,
                content={
                    "error": "Request Entity Too Large",
                    "message": f"Maximum size: {settings.max_request_size} bytes",
                    "type": "request_too_large",
                    "timestamp": str(time.time()),
                },
            )

        response = await call_next(request)

        if settings.is_production:
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers[
                "Strict-Transport-Security"
            ] = "max-age=31536000; includeSubDomains"

        return response  # type: ignore[no-any-return]


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Correlation IDs, timing and slow-request logging"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request_id = str(uuid.uuid4())
        set_correlation_id(correlation_id)
        set_request_id(request_id)

        client_ip = request.client.host if request.client else "unknown"

        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "correlation_id": correlation_id,
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": client_ip,
                "content_length": request.headers.get("Content-Length"),
                "event_type": "request_start",
            },
        )

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"Request failed: {request.method} {request.url.path} - {e} - {process_time:.3f}s",
                extra={
                    "correlation_id": correlation_id,
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "process_time": process_time,
                    "error_type": type(e).__name__,
                    "client_ip": client_ip,
                    "event_type": "request_error",
                },
                exc_info=True,
            )
            raise

        process_time = time.time() - start_time
        logger.info(
            f"Request completed: {response.status_code} - {request.method} {request.url.path} - {process_time:.3f}s",
            extra={
                "correlation_id": correlation_id,
                "request_id": request_id,
                "status_code": response.status_code,
                "process_time": process_time,
                "event_type": "request_complete",
            },
        )

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.3f}"

        # Checks run for up to the per-threadline timeout
        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} took {process_time:.3f}s",
                extra={
                    "correlation_id": correlation_id,
                    "request_id": request_id,
                    "process_time": process_time,
                    "event_type": "slow_request",
                },
            )

        return response  # type: ignore[no-any-return]
