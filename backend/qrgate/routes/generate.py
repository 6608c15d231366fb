"""
QRGate: Token-Authenticated Generation Route
=============================================

What:  POST /generate-qr, JSON body in, PNG out (AUTH_MODE=token).
How:   The handler only hands the request to the pipeline built by the app
       factory; rate limiting, authentication, extraction, validation,
       encoding and error formatting all happen there.

Request body:
    {
        "data": "https://example.com",      required
        "token": "<API_TOKEN>",             required
        "errorCorrectionLevel": "M",        L | M | Q | H
        "darkColor": "#000000",
        "lightColor": "#ffffff",
        "width": 300                        50..1000 pixels
    }

The body is read by the pipeline rather than declared as a pydantic
parameter: FastAPI would answer schema errors with 422 before the token is
checked, and existing callers expect 401/400 with `{"error": ...}`.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from qrgate.schemas.qr import ErrorResponse, RateLimitResponse
from qrgate.services.pipeline import RequestPipeline

router = APIRouter(tags=["QR Code"])


def get_generate_pipeline(request: Request) -> RequestPipeline:
    """Dependency: the pipeline assembled by create_app()."""
    return request.app.state.generate_pipeline


@router.post(
    "/generate-qr",
    response_class=Response,
    responses={
        200: {"description": "QR code image", "content": {"image/png": {}}},
        400: {"description": "Missing or invalid parameters", "model": ErrorResponse},
        401: {"description": "Invalid or missing token", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": RateLimitResponse},
        500: {"description": "QR code generation failed", "model": ErrorResponse},
    },
    summary="Generate a PNG QR code",
)
async def generate_qr(
    request: Request,
    pipeline: RequestPipeline = Depends(get_generate_pipeline),
) -> Response:
    return await pipeline.run(request)
