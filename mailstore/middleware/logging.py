"""Logging middleware for structured logging with trace IDs."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import structlog

logger = structlog.get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for structured logging with trace IDs."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log structured information."""
        trace_id = request.headers.get("x-trace-id") or str(uuid.uuid4())
        request.state.trace_id = trace_id

        # Every log line emitted while handling this request carries the trace id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(trace_id=trace_id)

        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(exc),
                process_time=time.time() - start_time,
                exc_info=exc,
            )
            raise
        finally:
            structlog.contextvars.unbind_contextvars("trace_id")

        process_time = time.time() - start_time
        logger.info(
            "Request completed",
            trace_id=trace_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            process_time=process_time,
        )

        response.headers["X-Trace-ID"] = trace_id
        response.headers["X-Process-Time"] = str(process_time)
        return response
