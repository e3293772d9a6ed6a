"""
FastAPI Form Relay Application Factory
======================================

This is the main entry point for the relay service that sits between a
browser form and a fixed upstream endpoint (typically a Google Apps Script
web app).

Architecture:
    Browser → Form Relay (this service) → Upstream

Request pipeline, in order:
    1. CORS policy   : preflight answered here, disallowed origins rejected
    2. Basic Auth    : every other request must carry the configured pair
    3. Routes        : /proxy relays the form, /health reports liveness

Environment Variables:
    - APPS_SCRIPT_URL: Upstream URL (required; the process exits if missing)
    - INJECT_TOKEN: Server-side token that replaces any client 'token' field
    - ALLOWED_ORIGIN: '*' (default) or one exact origin
    - BASIC_USER / BASIC_PASS: Credential pair (insecure defaults: admin/password)
    - PORT: Listen port (default: 3000)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    form-relay

    Or through uvicorn directly:
        uvicorn form_relay.main:create_app --factory --host 0.0.0.0 --port 3000
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .auth import BasicAuthGate, BasicAuthStage
from .config import Settings, get_settings, validate_configuration
from .cors import CorsPolicy, CorsStage
from .models import ErrorResponse, HealthResponse
from .pipeline import RelayPipelineMiddleware, RelayStage
from .proxy import proxy_router

logger = logging.getLogger("form_relay.main")


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def build_edge_stages(settings: Settings) -> List[RelayStage]:
    """
    Build the edge pipeline. CORS comes first so that browser preflights,
    which never carry credentials, are answered before the auth gate.
    """
    return [
        CorsStage(CorsPolicy.from_settings(settings)),
        BasicAuthStage(
            BasicAuthGate.from_settings(settings),
            exempt_paths=settings.auth_exempt_paths,
        ),
    ]


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging
        - Log the effective configuration and any deployment warnings
        - Open the shared upstream HTTP client (connection pool)

    Shutdown tasks:
        - Close the upstream HTTP client
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)

    logger.info(
        "Starting form relay",
        extra={
            "upstream_url": settings.upstream_url,
            "allowed_origin": settings.ALLOWED_ORIGIN,
            "token_injection": settings.INJECT_TOKEN is not None,
            "port": settings.PORT,
        }
    )

    for warning in validate_configuration(settings)["warnings"]:
        logger.warning(f"Configuration warning: {warning}")

    # Apps Script answers POSTs with a redirect to the result
    app.state.upstream_client = httpx.AsyncClient(
        follow_redirects=True,
        timeout=httpx.Timeout(
            settings.UPSTREAM_TIMEOUT_SECONDS,
            connect=settings.UPSTREAM_CONNECT_TIMEOUT_SECONDS,
        ),
    )

    yield

    logger.info("Shutting down form relay")
    await app.state.upstream_client.aclose()
    app.state.upstream_client = None


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Lifespan management
        - Edge pipeline (CORS, then Basic Auth)
        - Route handlers
        - Exception handlers

    Args:
        settings: Settings snapshot; loaded from the environment when omitted

    Returns:
        FastAPI: Configured application instance
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Form Relay",
        description="Authenticated multipart form relay to a fixed upstream",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings

    app.add_middleware(RelayPipelineMiddleware, stages=build_edge_stages(settings))

    app.include_router(proxy_router, tags=["Relay"])

    @app.get("/health", tags=["System"])
    async def health_check() -> HealthResponse:
        """Liveness check; does not contact the upstream."""
        return HealthResponse()

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns the generic error payload.
        """
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(message="internal server error").model_dump(),
        )

    return app


def main() -> None:
    """
    Console entry point.

    Loads settings from the environment and serves the relay. A missing
    APPS_SCRIPT_URL (or any invalid setting) is fatal: the error is logged
    and the process exits with status 1 before binding a port.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        setup_logging()
        invalid = ", ".join(
            ".".join(str(part) for part in error["loc"]) for error in e.errors()
        )
        logger.critical(f"Invalid configuration ({invalid}). Exiting.")
        sys.exit(1)

    setup_logging(settings.LOG_LEVEL)

    uvicorn.run(
        create_app(settings),
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
