"""Request context middleware for the lock API.

Tags every request with a request ID, a correlation ID and, on lock routes,
the locked resource, so log lines from the manager and the store can be tied
back to the HTTP call that caused them.
"""

from __future__ import annotations

import logging
import re
import uuid
from urllib.parse import unquote

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from leasehold.api.errors import internal_error_response
from leasehold.observability.logging import LogContext

logger = logging.getLogger(__name__)

# /locks/{resource} and /locks/{resource}/{action}; /locks/sweep is not a lock
_LOCK_PATH = re.compile(r"^/locks/(?P<resource>[^/]+)(?:/(?:acquire|renew|release))?/?$")


def resource_from_path(method: str, path: str) -> str | None:
    """Resource named by a lock route, if any."""
    match = _LOCK_PATH.match(path)
    if match is None:
        return None
    resource = unquote(match.group("resource"))
    if resource == "sweep" and method == "POST":
        return None
    return resource


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Attach request context to logs and response headers.

    Headers:
    - x-request-id: Unique ID for this request (generated if absent)
    - x-correlation-id: ID for tracking across services (defaults to the request ID)

    Unexpected errors are answered here with a 500 Result document, since
    the app's catch-all handler runs outside this middleware and would drop
    the correlation headers.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        correlation_id = request.headers.get("x-correlation-id") or request_id
        request.state.request_id = request_id
        request.state.correlation_id = correlation_id

        context = {"request_id": request_id, "correlation_id": correlation_id}
        resource = resource_from_path(request.method, request.url.path)
        if resource is not None:
            context["resource"] = resource

        with LogContext(**context):
            try:
                response = await call_next(request)
            except Exception:
                logger.exception(f"Unhandled error on {request.method} {request.url.path}")
                response = internal_error_response()

        response.headers["x-request-id"] = request_id
        response.headers["x-correlation-id"] = correlation_id
        return response
