"""
QRGate: Request Pipeline
=========================

What:  Composes the admission stages and the encoder for one route.
Why:   Keeps route handlers thin and guarantees a single, fixed stage order.
How:   run() executes the stages in order; the first stage that raises a
       QRGateError produces the terminal response and later stages never run.

Stage order (generation route):
    ┌────────────┐  ┌──────────────┐  ┌───────────┐  ┌───────────┐  ┌─────────┐
    │ Rate limit │→ │ Authenticate │→ │ Extract   │→ │ Validate  │→ │ Encode  │
    └────────────┘  └──────────────┘  └───────────┘  └───────────┘  └─────────┘
        429              401/403          400            400          500 / 200

    The global rate-limit scope runs before all of this, in
    RateLimitMiddleware.

Error mapping:
    QRGateError raised by a stage  → renderer.render(exc)
    Any exception from the encoder → EncodingFailure → 500
    Any other exception            → propagates to the catch-all handler (500)

The encoder gets exactly one attempt per request; nothing is cached, so
identical requests are encoded independently.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from qrgate.exceptions import EncodingFailure, InvalidInputError, QRGateError
from qrgate.middleware.rate_limit import client_key
from qrgate.middleware.request_id import request_id_var
from qrgate.schemas.qr import QRRequest
from qrgate.services.auth import Authenticator
from qrgate.services.encoders import Encoder
from qrgate.services.extractors import ParameterExtractor
from qrgate.services.rate_limiter import RateLimitDecision, RateLimiter
from qrgate.services.renderers import ErrorRenderer
from qrgate.services.validator import RequestValidator

logger = logging.getLogger(__name__)


class RateLimitGuard:
    """Applies one RateLimiter scope to the requests of a single route."""

    def __init__(self, limiter: RateLimiter, trust_proxy: bool = False):
        self.limiter = limiter
        self.trust_proxy = trust_proxy

    def check(self, request: Request) -> RateLimitDecision:
        return self.limiter.check(client_key(request, self.trust_proxy))


class RequestPipeline:
    """
    One instance per route, built by the app factory and stored on
    `app.state`. Holds no per-request state, so it is shared by all requests.
    """

    def __init__(
        self,
        extractor: ParameterExtractor,
        validator: RequestValidator,
        encoder: Encoder,
        renderer: ErrorRenderer,
        authenticator: Optional[Authenticator] = None,
        guards: Sequence[RateLimitGuard] = (),
    ):
        self.extractor = extractor
        self.validator = validator
        self.encoder = encoder
        self.renderer = renderer
        self.authenticator = authenticator
        self.guards = list(guards)

    def check_limits(self, request: Request, headers: Dict[str, str]) -> None:
        """Apply every rate-limit scope, collecting their headers into `headers`."""
        for rate_guard in self.guards:
            headers.update(rate_guard.check(request).headers)

    async def admit(self, request: Request) -> QRRequest:
        """
        Run the admission stages that follow the rate-limit guards.

        Raises:
            QRGateError from the first stage that rejects the request
        """
        # A malformed body must not reveal anything to an unauthenticated
        # caller, so authentication runs before the body error is reported
        malformed: Optional[InvalidInputError] = None
        try:
            raw: Dict[str, Any] = await self.extractor.read(request)
        except InvalidInputError as exc:
            raw, malformed = {}, exc

        if self.authenticator is not None:
            self.authenticator.authenticate(request.headers, raw)
        if malformed is not None:
            raise malformed

        qr_request = self.extractor.extract(raw)
        self.validator.validate(qr_request)
        return qr_request

    async def encode(self, qr_request: QRRequest) -> bytes:
        """Single encoder attempt in the threadpool; any failure is an EncodingFailure."""
        try:
            return await run_in_threadpool(self.encoder.encode, qr_request)
        except Exception as exc:
            logger.error(
                "[%s] Error generating QR code: %s",
                request_id_var.get(""),
                exc,
                exc_info=True,
            )
            raise EncodingFailure(detail=str(exc), context={"error": type(exc).__name__})

    async def run(self, request: Request) -> Response:
        rid = request_id_var.get("")
        headers: Dict[str, str] = {}
        try:
            self.check_limits(request, headers)
            qr_request = await self.admit(request)
            image = await self.encode(qr_request)
        except QRGateError as exc:
            if exc.status_code < 500:
                logger.info(
                    "[%s] Request rejected (%d): %s | Context: %s",
                    rid,
                    exc.status_code,
                    exc.message,
                    exc.context,
                )
            response = self.renderer.render(exc)
            # Rejections after the guards still report this route's scope
            for name, value in headers.items():
                response.headers.setdefault(name, value)
            return response

        logger.debug(
            "[%s] Generated %s, %d bytes, size=%s ecl=%s",
            rid,
            self.encoder.media_type,
            len(image),
            qr_request.size,
            qr_request.error_correction_level,
        )
        return Response(content=image, media_type=self.encoder.media_type, headers=headers)
