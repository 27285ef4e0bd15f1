"""Request context middleware using ContextVar.

Assigns each request an id (taken from the X-Request-ID header when the
caller sends one) and stores it in a ContextVar so that code running during
the request can read it with get_request_id(). Logs one access line per
request with status and duration, and turns any exception that escaped the
routers into the generic 500 envelope.
"""

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from core.errors import InternalError

logger = logging.getLogger("api.access")

# ---------------------------------------------------------------------------
# Context variable: task-local request state
# ---------------------------------------------------------------------------

_request_id: ContextVar[str] = ContextVar("request_id", default="-")


def get_request_id() -> str:
    """Return the id of the request being handled, or "-" outside one."""
    return _request_id.get()


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id, log the outcome, and contain unexpected errors."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        token = _request_id.set(request_id)
        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    "Unhandled error on %s %s request_id=%s",
                    request.method,
                    request.url.path,
                    request_id,
                )
                error = InternalError()
                response = JSONResponse(
                    status_code=error.status_code,
                    content={"success": False, "message": error.message, "data": None},
                )

            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "%s %s %s %.1fms request_id=%s",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                request_id,
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            _request_id.reset(token)
