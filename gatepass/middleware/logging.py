"""Logging middleware for request tracking."""
import re
import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger(__name__)

# Clients may supply their own id so one action can be traced across retries
REQUEST_ID_PATTERN = re.compile(r'^[A-Za-z0-9-]{8,64}$')

QUIET_PATHS = {"/health"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request id and timing to every log line of a request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        incoming = request.headers.get("X-Request-ID", "")
        request_id = incoming if REQUEST_ID_PATTERN.match(incoming) else str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
        )

        log = logger.debug if request.url.path in QUIET_PATHS else logger.info
        start_time = time.perf_counter()

        # Query strings may carry phone numbers; only the path is logged
        log("request_started")

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                exception=str(exc),
                exception_type=type(exc).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        response.headers["X-Request-ID"] = request_id
        log(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return response
