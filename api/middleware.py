"""
Middleware for the HEXROUTE API.

Provides:
- Request ID tracking for log correlation
- Structured request logging with timing
- Error handling and sanitization
"""
import time
import uuid
import logging
import json
from typing import Callable, Optional
from contextvars import ContextVar
from datetime import datetime, timezone

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response, JSONResponse
from fastapi import FastAPI

# Context variable for request ID (thread-safe)
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    """Get the current request ID from context."""
    return request_id_ctx.get()


class StructuredLogger:
    """
    Structured JSON logger.

    Outputs one JSON object per line with consistent fields so request
    logs can be filtered by request ID.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log(self, level: str, message: str, **kwargs):
        """Internal log method with structured output."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "message": message,
            "service": "hexroute-api",
            "request_id": get_request_id(),
            **kwargs
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        getattr(self.logger, level.lower())(json.dumps(log_entry))

    def info(self, message: str, **kwargs):
        self._log("INFO", message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log("WARNING", message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log("ERROR", message, **kwargs)


# Global structured logger instance
structured_logger = StructuredLogger("hexroute.api")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Adds unique request ID to each request.

    The request ID is:
    - Generated as a UUID4 if not provided
    - Accepted from X-Request-ID header if provided
    - Added to response headers for client correlation
    - Available via get_request_id() for logging
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)

        try:
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with method, path, status and duration."""

    # Paths to exclude from logging (health checks)
    EXCLUDED_PATHS = {"/api/health", "/health"}

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            structured_logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round(duration_ms, 2),
                client_ip=client_ip,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        structured_logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
            client_ip=client_ip,
        )
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling with sanitized responses.

    Internal errors return a generic message with the request ID unless
    ``debug`` is set; full details always go to the log.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            request_id = get_request_id()

            structured_logger.error(
                "Unhandled exception",
                error=str(e),
                error_type=type(e).__name__,
                path=request.url.path,
                method=request.method,
            )

            if self.debug:
                detail = str(e)
            else:
                detail = "An internal error occurred. Please report the request ID."

            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal Server Error",
                    "detail": detail,
                    "request_id": request_id,
                },
                headers={"X-Request-ID": request_id} if request_id else {},
            )


def setup_middleware(app: FastAPI, debug: bool = False):
    """
    Configure middleware for the application.

    Middleware is executed in reverse order of addition.
    """
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(ErrorHandlingMiddleware, debug=debug)
