"""
QRGate: Request ID Middleware
==============================

What:  Assigns each request a short correlation ID and returns it in a header.
Why:   Log lines from the pipeline, the access log and the error handlers of
       one request can be tied together.
How:   Reads X-Request-ID or generates one, stores it in a ContextVar and on
       request.state, and echoes it as X-Request-ID on the response.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

MAX_REQUEST_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the caller's X-Request-ID if present (truncated to 64 chars)
        2. Otherwise generate an 8-character ID from a UUID4
        3. Expose it via request_id_var and request.state.request_id
        4. Add it to the response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "").strip()
        rid = supplied[:MAX_REQUEST_ID_LENGTH] or str(uuid.uuid4())[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
