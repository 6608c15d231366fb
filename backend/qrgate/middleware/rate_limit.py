"""
QRGate: Rate Limiting Middleware
=================================

What:  Applies the coarse "global" rate-limit scope to every request.
Why:   Rejects abusive clients before any parsing, authentication or
       encoding work is done.
How:   Delegates counting to a RateLimiter (fixed window, see
       services/rate_limiter.py) keyed by client address.
When:  Inside the request ID, logging and security header middleware, so
       rejections are logged and carry the same headers as other responses.

The stricter "generate" scope is not applied here: it runs as the first
stage of the generation pipeline so that it only covers that route.

Response on rate limit:
    HTTP 429 Too Many Requests
    Headers: Retry-After, RateLimit-Limit, RateLimit-Remaining, RateLimit-Reset
    Body:    {"error": "...", "retry_after": <seconds>}

Admitted responses carry the RateLimit-* headers too, unless a stricter
scope further down already set them.
"""

import logging
from typing import Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from qrgate.exceptions import RateExceededError
from qrgate.services.rate_limiter import RateLimiter
from qrgate.services.renderers import rate_limit_response

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_PATHS = frozenset({"/health"})


def client_key(request: Request, trust_proxy: bool = False) -> str:
    """
    Identity used for rate limiting: the remote address.

    Behind a trusted proxy the first X-Forwarded-For entry is the real
    client. Without one, the header is caller-controlled and ignored.
    """
    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for", "")
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Excluded paths:
        - /health: health checks are never throttled

    Thread Safety:
        Counting is delegated to the limiter's store, which is atomic per key.
    """

    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        trust_proxy: bool = False,
        excluded_paths: Optional[Iterable[str]] = None,
    ):
        super().__init__(app)
        self.limiter = limiter
        self.trust_proxy = trust_proxy
        self.excluded_paths = frozenset(
            DEFAULT_EXCLUDED_PATHS if excluded_paths is None else excluded_paths
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        try:
            decision = self.limiter.check(client_key(request, self.trust_proxy))
        except RateExceededError as exc:
            return rate_limit_response(exc)

        response = await call_next(request)
        for name, value in decision.headers.items():
            response.headers.setdefault(name, value)
        return response
