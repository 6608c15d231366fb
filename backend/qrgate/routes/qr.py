"""
QRGate: Referrer-Gated Generation Route
========================================

What:  GET /qr?data=...&size=300&ecl=M&dark=%23000000&light=%23FFFFFF,
       SVG out (AUTH_MODE=origin).
Who:   Embedded as an <img> URL in reporting dashboards, which is why the
       parameters travel in the query string and errors are plain text.

Example: /qr?data=https://example.com&size=300&ecl=H
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from qrgate.services.pipeline import RequestPipeline

router = APIRouter(tags=["QR Code"])

_TEXT_ERROR = {"content": {"text/plain": {}}}


def get_qr_pipeline(request: Request) -> RequestPipeline:
    return request.app.state.qr_pipeline


@router.get(
    "/qr",
    response_class=Response,
    responses={
        200: {"description": "QR code image", "content": {"image/svg+xml": {}}},
        400: {"description": "Missing or invalid parameters", **_TEXT_ERROR},
        403: {"description": "Referrer not allowed", **_TEXT_ERROR},
        500: {"description": "QR code generation failed", **_TEXT_ERROR},
    },
    summary="Generate an SVG QR code from URL parameters",
)
async def get_qr(
    request: Request,
    pipeline: RequestPipeline = Depends(get_qr_pipeline),
) -> Response:
    return await pipeline.run(request)
