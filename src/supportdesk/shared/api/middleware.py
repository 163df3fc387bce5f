"""
Shared API Middleware
======================

Common middleware and exception handlers for the FastAPI application.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from supportdesk.core import (
    ApplicationException,
    ExternalServiceException,
    ProviderAuthError,
    ProviderBadRequest,
    ProviderQuotaExceeded,
    RAGGenerationError,
    ResourceNotFoundException,
    ValidationException,
)
from supportdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    An incoming X-Correlation-ID header is reused, otherwise one is generated.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class ResponseTimeMiddleware(BaseHTTPMiddleware):
    """Adds an X-Response-Time header in seconds."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Response-Time"] = f"{time.perf_counter() - start_time:.3f}s"
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request with its outcome and latency.

    Only the path is logged; query strings may carry visitor text.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = getattr(request.state, "correlation_id", "unknown")
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


def status_code_for(error: Exception) -> int:
    """
    HTTP status for an application error.

    Wrapped RAG failures are judged by their root cause.
    """
    if isinstance(error, RAGGenerationError):
        error = error.root_cause
    if isinstance(error, ProviderQuotaExceeded):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(error, ProviderAuthError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(error, (ProviderBadRequest, ValidationException)):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(error, ResourceNotFoundException):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, ExternalServiceException):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """Maps ApplicationException subclasses to their HTTP status."""
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    code = status_code_for(exc)

    logger.warning(
        "Application error",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "status_code": code,
            "error_type": type(exc).__name__,
            "error_message": exc.message
        }
    )

    return JSONResponse(
        status_code=code,
        content={
            "detail": exc.message,
            "error_type": type(exc).__name__,
            "correlation_id": correlation_id
        }
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Internal details are only included in development.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    is_dev = getattr(getattr(request.app.state, "settings", None), "environment", None) == "development"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )
