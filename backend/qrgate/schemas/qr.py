"""
QRGate: Pydantic Request/Response Schemas
==========================================

What:  Pydantic models for the canonical QR request and the API's JSON bodies.
Why:   One transport-agnostic request record shared by Validator and Encoder,
       plus response models that drive the OpenAPI documentation.

Design Decision:
    QRRequest carries NO field constraints. Extraction and validation are
    separate pipeline stages with their own error codes and messages, so the
    model only fixes the shape and freezes the record once built.
"""

from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_ERROR_CORRECTION_LEVEL = "M"
DEFAULT_SIZE = 300
DEFAULT_DARK_COLOR = "#000000"
DEFAULT_LIGHT_COLOR = "#ffffff"


# ══════════════════════════════════════════════════════════════════════════
# Canonical Request Record
# ══════════════════════════════════════════════════════════════════════════


class QRRequest(BaseModel):
    """
    What:  Normalized QR generation parameters, independent of transport.
    Who:   Built by a ParameterExtractor, checked by the Validator, consumed
           by an Encoder.

    Invariant: an instance that reaches an Encoder has already passed the
    Authenticator and the Validator.
    """

    content: str = Field(description="Payload to encode")
    error_correction_level: str = Field(
        default=DEFAULT_ERROR_CORRECTION_LEVEL,
        description="Error correction level: L, M, Q or H",
    )
    size: Optional[int] = Field(
        default=DEFAULT_SIZE,
        description="Output width in pixels (None when the caller sent a non-integer)",
    )
    dark_color: str = Field(default=DEFAULT_DARK_COLOR, description="Module colour")
    light_color: str = Field(default=DEFAULT_LIGHT_COLOR, description="Background colour")
    credential: Optional[str] = Field(
        default=None,
        description="Presented token, if any",
        repr=False,
    )

    model_config = {"frozen": True}


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class HealthResponse(BaseModel):
    """Returned by GET /health. Shape is fixed for existing monitors."""
    status: str = Field(default="ok", description="Always 'ok' while the process serves")


class ErrorResponse(BaseModel):
    """
    What:  JSON error body of the token-mode API.

    Example:
        {"error": "Unauthorized. Invalid or missing authentication token."}
    """
    error: str = Field(description="Human-readable error description")
    details: Optional[str] = Field(
        default=None,
        description="Internal error detail (development mode only)",
    )


class RateLimitResponse(BaseModel):
    """JSON body returned with HTTP 429."""
    error: str = Field(description="Human-readable error description")
    retry_after: int = Field(description="Seconds until the client may retry")
