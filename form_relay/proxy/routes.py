"""
Proxy Routes - Upstream Form Relay
==================================

This module implements the single relay endpoint. Requests reaching it have
already passed the CORS and Basic Auth stages of the edge pipeline.

Flow:
-----
1. Require a multipart/form-data body of plain text fields
2. Apply the token-injection rule (server token replaces any client token)
3. POST the fields as multipart/form-data to the configured upstream URL
4. Relay the upstream's status code, content type and body unchanged

Upstream 4xx/5xx answers are relayed like any other answer. Only transport
failures (connect errors, timeouts, protocol errors) turn into the generic
500 response; the detail stays in the server log.

Endpoints:
----------
- POST /proxy: Forward a browser form to the upstream
"""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

from ..config import Settings
from ..models import ErrorResponse
from .forms import (
    TOKEN_FIELD,
    FileFieldNotSupported,
    build_outbound_fields,
    empty_multipart_body,
    read_inbound_fields,
    to_multipart_files,
)

logger = logging.getLogger(__name__)

proxy_router = APIRouter()

MULTIPART_FORM_DATA = "multipart/form-data"
DEFAULT_CONTENT_TYPE = "text/plain"


# ============================================================================
# Dependencies
# ============================================================================

def get_app_settings(request: Request) -> Settings:
    """Settings snapshot attached to the application at creation time."""
    return request.app.state.settings


def get_upstream_client(request: Request) -> httpx.AsyncClient:
    """
    Dependency to get the upstream HTTP client from app state.

    Raises:
        HTTPException: If the application lifespan has not opened the client
    """
    client = getattr(request.app.state, "upstream_client", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Upstream client not initialized",
        )
    return client


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
    )


def is_multipart(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == MULTIPART_FORM_DATA


# ============================================================================
# Proxy Endpoints
# ============================================================================

@proxy_router.post("/proxy")
async def relay_form(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    upstream_client: httpx.AsyncClient = Depends(get_upstream_client),
) -> Response:
    """
    Relay a multipart form to the upstream and return its answer verbatim.

    Returns:
        The upstream's status, content type and body, or a JSON error for
        a rejected body (415/400) or an upstream transport failure (500)
    """
    if not is_multipart(request.headers.get("content-type", "")):
        return error_response(
            status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, "expected multipart/form-data"
        )

    async with request.form() as form:
        try:
            inbound = read_inbound_fields(form)
        except FileFieldNotSupported as e:
            logger.info(f"Rejected file part in relay form: {e.field_name}")
            return error_response(
                status.HTTP_400_BAD_REQUEST, "file uploads are not supported"
            )

    outbound = build_outbound_fields(inbound, settings.INJECT_TOKEN)

    # Field names only; values may hold the token
    logger.info(
        "Relaying form to upstream",
        extra={
            "fields": [name for name, _ in outbound],
            "token_injected": settings.INJECT_TOKEN is not None,
            "token_forwarded": any(name == TOKEN_FIELD for name, _ in outbound),
        },
    )

    timeout = httpx.Timeout(
        settings.UPSTREAM_TIMEOUT_SECONDS,
        connect=settings.UPSTREAM_CONNECT_TIMEOUT_SECONDS,
    )

    if outbound:
        body = {"files": to_multipart_files(outbound)}
    else:
        content, content_type = empty_multipart_body()
        body = {"content": content, "headers": {"content-type": content_type}}

    try:
        upstream = await upstream_client.post(
            settings.upstream_url,
            timeout=timeout,
            **body,
        )
    except httpx.TimeoutException as e:
        logger.error(
            f"Upstream request timed out: {e!r}",
            exc_info=True,
            extra={"upstream_url": settings.upstream_url},
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "proxy error")
    except httpx.HTTPError as e:
        logger.error(
            f"Upstream request failed: {e!r}",
            exc_info=True,
            extra={"upstream_url": settings.upstream_url},
        )
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "proxy error")

    content_type = upstream.headers.get("content-type") or DEFAULT_CONTENT_TYPE

    logger.info(
        "Upstream responded",
        extra={
            "status_code": upstream.status_code,
            "content_type": content_type,
            "body_length": len(upstream.content),
        },
    )

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        headers={"content-type": content_type},
    )
