"""
DocGate — FastAPI Application Factory
======================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (`uvicorn docgate.main:app`) and by `python -m docgate`.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain (outermost first):                     │
    │  AccessLog → SecurityHeaders → CORS →                    │
    │  BodySizeLimit → Sanitize → ParameterPollution →         │
    │  GZip → RateLimit                                        │
    │                                                          │
    │  Routes:                                                 │
    │  GET /   GET /health.json   GET /collections             │
    │  GET|POST|DELETE /{collection}                           │
    │  GET|PUT|PATCH|DELETE /{collection}/{id}                 │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400 │ NotFound→404 │ RateLimit→429 │ Store→500│
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Create the MongoDB client, registry and document service
    3. Ping MongoDB; log the outcome (an unreachable store does not stop startup)

    Shutdown:
    1. Close the MongoDB client
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docgate import __version__
from docgate.config import Settings, settings as default_settings
from docgate.database import create_client, dispose_client, get_database, ping
from docgate.exceptions import DocGateError, RateLimitExceededError
from docgate.middleware.body_limit import BodySizeLimitMiddleware
from docgate.middleware.logging import AccessLogMiddleware, request_id_var
from docgate.middleware.parameter_pollution import ParameterPollutionMiddleware
from docgate.middleware.rate_limit import FixedWindowRateLimiter, RateLimitMiddleware
from docgate.middleware.sanitize import SanitizeMiddleware
from docgate.middleware.security_headers import SecurityHeadersMiddleware
from docgate.routes import collections, documents, health, root
from docgate.services.document_service import DocumentService
from docgate.services.registry import CollectionRegistry

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup builds the store-facing objects unless create_app() was handed a
    DocumentService already (tests do this); shutdown closes the client.
    """
    config: Settings = app.state.settings
    setup_logging(config.log_level)
    logger.info("=" * 60)
    logger.info("DocGate %s starting up...", __version__)

    client = None
    if getattr(app.state, "document_service", None) is None:
        client = create_client(config)
        registry = CollectionRegistry(get_database(client, config))
        app.state.mongo_client = client
        app.state.registry = registry
        app.state.document_service = DocumentService(registry, config.store_timeout_seconds)

        logger.info("Attempting to connect to MongoDB...")
        if await ping(client):
            logger.info("MongoDB connected successfully")
        else:
            logger.error("MongoDB is not reachable at startup")
            logger.warning(
                "Server will start but database operations will fail until MongoDB is running."
            )

    logger.info("Server ready at http://%s:%d", config.backend_host, config.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("DocGate shutting down...")
    if client is not None:
        await dispose_client(client)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to `{"error": <message>}` responses.

    Handler hierarchy:
        DocGateError subclasses  → their status_code, message as-is
        RequestValidationError   → 400 "Invalid request body"
        404 / 405 from routing   → 404 "Endpoint not found"
        Exception (fallback)     → 500 "Something went wrong!" (stack logged)
    """

    @app.exception_handler(DocGateError)
    async def handle_docgate_error(request: Request, exc: DocGateError):
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
        else:
            logger.warning("[%s] %s: %s", rid, type(exc).__name__, exc.message)

        headers = {}
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Request validation failed: %s", rid, exc.errors())
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return JSONResponse(status_code=404, content={"error": "Endpoint not found"})
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Something went wrong!"})


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    document_service: Optional[DocumentService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:         Configuration; defaults to the environment-loaded singleton
        document_service: Pre-built service (tests pass one backed by an
                          in-memory collection); when omitted, the lifespan
                          connects to MongoDB
    """
    config = settings or default_settings

    app = FastAPI(
        title="DocGate API",
        description=(
            "Schema-less document API: CRUD, filtering, pagination, sorting and "
            "full-text search over any named collection."
        ),
        version=__version__,
        # /docs and /redoc would shadow collections of the same name
        docs_url=None,
        redoc_url=None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.write_limiter = FixedWindowRateLimiter(
        limit=config.write_rate_limit_requests,
        window_seconds=config.rate_limit_window,
    )
    if document_service is not None:
        app.state.document_service = document_service
        app.state.registry = document_service.registry

    # ── Register Middleware ───────────────────────────────────────────────
    # Added innermost first; the last added runs first on each request.
    app.add_middleware(
        RateLimitMiddleware,
        limiter=FixedWindowRateLimiter(
            limit=config.rate_limit_requests,
            window_seconds=config.rate_limit_window,
        ),
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(ParameterPollutionMiddleware)
    app.add_middleware(SanitizeMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=config.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "Retry-After",
            "RateLimit-Limit",
            "RateLimit-Remaining",
            "RateLimit-Reset",
        ],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(AccessLogMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    # Fixed paths first; documents.router's /{collection} matches anything.
    app.include_router(root.router)
    app.include_router(health.router)
    app.include_router(collections.router)
    app.include_router(documents.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
