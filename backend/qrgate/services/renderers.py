"""
QRGate: Error Renderers
========================

What:  Turn a QRGateError into the terminal HTTP response of a deployment.
Why:   The two transports promise different error formats to existing
       callers (JSON bodies for the token API, plain text for the GET API),
       while the pipeline and its exceptions stay format-agnostic.

Security: internal detail (EncodingFailure.detail) is only rendered when
`expose_errors` is set, i.e. APP_ENV=development.
"""

from abc import ABC, abstractmethod
from typing import Dict

from starlette.responses import JSONResponse, PlainTextResponse, Response

from qrgate.exceptions import (
    EncodingFailure,
    InvalidInputError,
    QRGateError,
    RateExceededError,
)

MISSING_DATA_JSON_MESSAGE = 'No data provided. Please include "data" in your JSON body.'


def rate_limit_response(exc: RateExceededError) -> JSONResponse:
    """429 body and headers shared by the middleware and the pipeline."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "retry_after": exc.retry_after},
        headers=exc.headers,
    )


class ErrorRenderer(ABC):
    def __init__(self, expose_errors: bool = False):
        self.expose_errors = expose_errors

    @abstractmethod
    def render(self, exc: QRGateError) -> Response:
        ...

    @staticmethod
    def _headers(exc: QRGateError) -> Dict[str, str]:
        return exc.headers if isinstance(exc, RateExceededError) else {}


class JsonErrorRenderer(ErrorRenderer):
    """`{"error": ...}` bodies, as returned by POST /generate-qr."""

    def render(self, exc: QRGateError) -> Response:
        if isinstance(exc, RateExceededError):
            return rate_limit_response(exc)

        content = {"error": exc.message}
        if isinstance(exc, InvalidInputError) and exc.reason in (
            InvalidInputError.MISSING_FIELD,
            InvalidInputError.EMPTY_CONTENT,
        ):
            content["error"] = MISSING_DATA_JSON_MESSAGE
        if isinstance(exc, EncodingFailure) and self.expose_errors:
            content["details"] = exc.detail

        return JSONResponse(status_code=exc.status_code, content=content)


class TextErrorRenderer(ErrorRenderer):
    """Plain-text bodies, as returned by GET /qr."""

    def render(self, exc: QRGateError) -> Response:
        message = exc.message
        if isinstance(exc, EncodingFailure):
            message = "Error generating QR code"
            if self.expose_errors and exc.detail:
                message = f"{message}: {exc.detail}"

        return PlainTextResponse(
            message,
            status_code=exc.status_code,
            headers=self._headers(exc),
        )
