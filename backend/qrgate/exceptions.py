"""
QRGate: Custom Exception Hierarchy
===================================

What:  Defines application-specific exceptions for each way a request can fail.
Why:   Every pipeline stage signals rejection with one of these types; the
       pipeline turns them into the variant's response format in one place.
How:   Each exception class carries a message, an HTTP status, and optional
       context dict (logged, never returned to the client).
Who:   Raised by services and middleware; rendered by RequestPipeline and
       the global handlers registered in main.py.

Exception Hierarchy:
    QRGateError (base)
    ├── UnauthenticatedError     → 401 Unauthorized (bad/missing token)
    │   └── OriginNotAllowedError → 403 Forbidden (Referer not allow-listed)
    ├── InvalidInputError        → 400 Bad Request (client can fix)
    ├── RateExceededError        → 429 Too Many Requests
    └── EncodingFailure          → 500 Internal Server Error

Anything that is not a QRGateError is an unhandled fault and is caught by
the catch-all handler in main.py.
"""

from typing import Any, Dict, Optional


class QRGateError(Exception):
    """
    Base exception for all QRGate application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        status_code: HTTP status the error maps to
        context:     Additional debug info (logged but NOT returned to client)
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class UnauthenticatedError(QRGateError):
    """
    Raised when the presented credential is missing or does not match.

    HTTP: 401 Unauthorized

    Missing and mismatched tokens raise the same error with the same
    message so callers cannot tell which one happened.
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Unauthorized. Invalid or missing authentication token.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class OriginNotAllowedError(UnauthenticatedError):
    """Raised when the Referer header matches no allow-listed domain. HTTP 403."""

    status_code = 403

    def __init__(
        self,
        message: str = (
            "Unauthorized access. This API can only be used from authorized applications."
        ),
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidInputError(QRGateError):
    """
    Raised when request parameters are missing or malformed.

    What:    The client sent data that can be corrected.
    HTTP:    400 Bad Request

    The `reason` code is stable and machine-readable; renderers map it to
    the exact wording each transport promises its callers.

    Reason codes:
        MALFORMED_BODY     body is not a JSON object
        MISSING_FIELD      content parameter absent
        EMPTY_CONTENT      content parameter present but empty
        INVALID_ECL        error correction level not in L/M/Q/H
        SIZE_OUT_OF_RANGE  size not an integer within [50, 1000]
        INVALID_COLOR      dark/light colour is not a parseable colour
    """

    status_code = 400

    MALFORMED_BODY = "MALFORMED_BODY"
    MISSING_FIELD = "MISSING_FIELD"
    EMPTY_CONTENT = "EMPTY_CONTENT"
    INVALID_ECL = "INVALID_ECL"
    SIZE_OUT_OF_RANGE = "SIZE_OUT_OF_RANGE"
    INVALID_COLOR = "INVALID_COLOR"

    def __init__(
        self,
        reason: str,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.reason = reason
        self.field = field


class RateExceededError(QRGateError):
    """
    Raised when a client exceeds a rate-limit scope.

    HTTP:    429 Too Many Requests

    Carries everything needed for the standard headers:
        retry_after: Seconds until the client's window resets (Retry-After)
        limit:       Budget of the breached scope (RateLimit-Limit)
        reset_after: Seconds until reset (RateLimit-Reset)
    """

    status_code = 429

    def __init__(
        self,
        scope: str,
        limit: int,
        retry_after: int,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.update({"scope": scope, "limit": limit, "retry_after": retry_after})
        super().__init__(
            message="Too many requests, please try again later.",
            context=ctx,
        )
        self.scope = scope
        self.limit = limit
        self.retry_after = retry_after
        self.reset_after = retry_after

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": "0",
            "RateLimit-Reset": str(self.reset_after),
        }


class EncodingFailure(QRGateError):
    """
    Raised when the QR encoder rejects its input or faults internally.

    HTTP:    500 Internal Server Error

    Security Note:
        `detail` holds the underlying exception text. It is only returned to
        the client when APP_ENV=development; production responses are generic.
    """

    status_code = 500

    def __init__(
        self,
        detail: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message="Failed to generate QR code", context=context)
        self.detail = detail
