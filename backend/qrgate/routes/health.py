"""
QRGate: Health Check and Banner Routes
=======================================

What:  GET /health for monitors and load balancers, GET / for humans.
Why:   Both must answer regardless of authentication or rate-limit state,
       so they run no pipeline stages and are excluded from rate limiting
       (/health) or only subject to the global scope (/).

The service has no external dependencies to probe: if the process can
answer, it can encode.
"""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from qrgate.schemas.qr import HealthResponse

router = APIRouter(tags=["Health"])

BANNERS = {
    "token": (
        "QR Code Generator API is running. "
        "Authorized POST requests to /generate-qr are required."
    ),
    "origin": (
        "QR Code Generator API is running. "
        "Send a GET request to /qr with data parameter."
    ),
}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Always returns {\"status\": \"ok\"} while the process serves requests.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def banner(request: Request) -> PlainTextResponse:
    """Plain-text banner describing how to use the mounted API."""
    return PlainTextResponse(BANNERS[request.app.state.settings.auth_mode])
