"""
QRGate: FastAPI Application Factory
====================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes middleware registration, pipeline assembly, route
       mounting, and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn qrgate.main:app) or the `qrgate` script.

Application Architecture (AUTH_MODE=token):
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────┐ ┌─────────────────┐ ┌──────────────┐  │
    │  │ Req ID   │→│ Logging/Headers │→│ Global limit │  │
    │  └──────────┘ └─────────────────┘ └──────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────────┐ ┌──────────┐ ┌─────────────┐  │
    │  │ POST /generate-qr│ │ GET /    │ │ GET /health │  │
    │  └──────────────────┘ └──────────┘ └─────────────┘  │
    │           │                                         │
    │  RequestPipeline: generate limit → token → body     │
    │                   → validate → PNG                  │
    └─────────────────────────────────────────────────────┘

    AUTH_MODE=origin swaps the generation route for GET /qr (referrer
    check → query → validate → SVG), drops rate limiting and adds CORS.

Lifecycle:
    Startup:
    1. Initialize logging
    2. Log insecure configuration choices
    3. Install fatal handlers for faults outside any request
    Shutdown:
    1. Log shutdown complete (no external resources to release)
"""

import asyncio
import logging
import os
import signal
import sys
import threading
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from qrgate import __version__
from qrgate.config import Settings, settings as default_settings
from qrgate.exceptions import QRGateError
from qrgate.middleware.logging import RequestLoggingMiddleware
from qrgate.middleware.rate_limit import RateLimitMiddleware
from qrgate.middleware.request_id import RequestIDMiddleware, request_id_var
from qrgate.middleware.security_headers import SecurityHeadersMiddleware
from qrgate.routes import generate, health, qr
from qrgate.services.auth import OriginAuthenticator, TokenAuthenticator
from qrgate.services.encoders import PngEncoder, SvgEncoder
from qrgate.services.extractors import BodyParameterExtractor, QueryParameterExtractor
from qrgate.services.pipeline import RateLimitGuard, RequestPipeline
from qrgate.services.rate_limiter import InMemoryRateLimitStore, RateLimiter
from qrgate.services.renderers import JsonErrorRenderer, TextErrorRenderer
from qrgate.services.validator import RequestValidator

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(config: Settings) -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Level:  LOG_LEVEL, or DEBUG in development / INFO in production.
    """
    logging.basicConfig(
        level=getattr(logging, config.effective_log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Our access log replaces uvicorn's
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.INFO)


# ══════════════════════════════════════════════════════════════════════════
# Fatal Fault Handling
# ══════════════════════════════════════════════════════════════════════════

def _terminate() -> None:
    """Ask the server to shut down; the supervisor restarts the process."""
    os.kill(os.getpid(), signal.SIGTERM)


def install_fatal_handlers(
    loop: asyncio.AbstractEventLoop,
    terminate: Callable[[], None] = _terminate,
) -> None:
    """
    Treat faults outside any request as fatal.

    Per-request faults are caught by the pipeline and the exception handlers.
    An exception escaping a background task, loop callback or thread means
    shared state may be corrupt, so it is logged at CRITICAL and the process
    is terminated instead of limping on.
    """

    def handle_loop_exception(
        loop: asyncio.AbstractEventLoop, context: Dict[str, Any]
    ) -> None:
        exc = context.get("exception")
        logger.critical(
            "Unhandled fault in background context: %s",
            context.get("message", "no message"),
            exc_info=(type(exc), exc, exc.__traceback__) if exc else None,
        )
        terminate()

    def handle_thread_exception(args: threading.ExceptHookArgs) -> None:
        logger.critical(
            "Unhandled fault in thread %s",
            args.thread.name if args.thread else "unknown",
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )
        terminate()

    loop.set_exception_handler(handle_loop_exception)
    threading.excepthook = handle_thread_exception


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    config: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(config)
    logger.info("=" * 60)
    logger.info("QRGate %s starting up (mode=%s, env=%s)", __version__, config.auth_mode, config.app_env)

    for warning in config.configuration_warnings():
        logger.warning("WARNING: %s", warning)

    install_fatal_handlers(asyncio.get_running_loop())

    logger.info("QR Code Generator API running on port %d", config.port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Outermost error boundary.

    Pipeline stages render their own failures, so these handlers only see
    QRGateErrors raised outside a pipeline and genuinely unexpected faults.

    Handler hierarchy:
        QRGateError       → its status code, {"error": message}
        Exception         → 500 {"error": "Internal server error"}

    Security: tracebacks are logged server-side only. Exception text is
    added as "details" only in development.
    """

    @app.exception_handler(QRGateError)
    async def handle_app_error(request: Request, exc: QRGateError):
        rid = request_id_var.get("")
        logger.warning("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        content = {"error": "Internal server error"}
        if app.state.settings.is_development:
            content["details"] = str(exc)
        return JSONResponse(status_code=500, content=content)


# ══════════════════════════════════════════════════════════════════════════
# Pipeline Assembly
# ══════════════════════════════════════════════════════════════════════════

def build_token_mode(
    app: FastAPI, config: Settings, clock: Callable[[], float]
) -> RateLimiter:
    """
    Wire POST /generate-qr. Returns the global limiter for the middleware.

    Both scopes share one bounded store; the scope name keeps them apart.
    """
    store = InMemoryRateLimitStore(max_keys=config.rate_limit_max_keys)
    global_limiter = RateLimiter(
        scope="global",
        limit=config.global_rate_limit_requests,
        window_seconds=config.global_rate_limit_window,
        store=store,
        clock=clock,
    )
    generate_limiter = RateLimiter(
        scope="generate",
        limit=config.generate_rate_limit_requests,
        window_seconds=config.generate_rate_limit_window,
        store=store,
        clock=clock,
    )

    app.state.rate_limit_store = store
    app.state.generate_pipeline = RequestPipeline(
        extractor=BodyParameterExtractor(),
        validator=RequestValidator(),
        encoder=PngEncoder(border=config.qr_border),
        renderer=JsonErrorRenderer(expose_errors=config.is_development),
        authenticator=TokenAuthenticator(config.api_token),
        guards=[RateLimitGuard(generate_limiter, trust_proxy=config.trust_proxy)],
    )
    app.include_router(generate.router)
    return global_limiter


def build_origin_mode(app: FastAPI, config: Settings) -> None:
    """Wire GET /qr. No rate limiting in this mode."""
    app.state.qr_pipeline = RequestPipeline(
        extractor=QueryParameterExtractor(),
        validator=RequestValidator(),
        encoder=SvgEncoder(border=config.qr_border),
        renderer=TextErrorRenderer(expose_errors=config.is_development),
        authenticator=OriginAuthenticator(config.allowed_domains_list),
    )
    app.include_router(qr.router)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    config: Optional[Settings] = None,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings to use (defaults to the environment-loaded singleton)
        clock:  Time source for the rate limiters (overridden in tests)

    Every call builds fresh pipelines and rate-limit state, so tests get
    isolated apps.
    """
    config = config or default_settings

    app = FastAPI(
        title="QRGate API",
        description=(
            "Converts text into QR code images. Requests are rate limited and "
            "gated by a shared-secret token or a referrer allow-list."
        ),
        version=__version__,
        docs_url="/docs" if config.is_development else None,
        redoc_url=None,
        openapi_url="/openapi.json" if config.is_development else None,
        lifespan=lifespan,
    )
    app.state.settings = config

    global_limiter = None
    if config.auth_mode == "token":
        global_limiter = build_token_mode(app, config, clock)
    else:
        build_origin_mode(app, config)
    app.include_router(health.router)

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition (last added = first)
    if config.auth_mode == "origin":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "OPTIONS"],
            max_age=86400,
        )
    if global_limiter is not None:
        # Inside the header middleware so 429s carry request ID and security headers
        app.add_middleware(
            RateLimitMiddleware,
            limiter=global_limiter,
            trust_proxy=config.trust_proxy,
        )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)
    return app


def run() -> None:
    """Console entry point: serve the module-level app with uvicorn."""
    import uvicorn

    uvicorn.run(
        "qrgate.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.effective_log_level.lower(),
    )


# uvicorn expects `qrgate.main:app` to be importable
app = create_app()
