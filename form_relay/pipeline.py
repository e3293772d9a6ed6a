"""
Edge Pipeline
=============

Runs the request-processing stages that sit in front of the route handlers
(CORS policy, Basic Auth) in one explicit, ordered list instead of relying on
the order in which middleware classes happen to be registered.

Each stage sees the request on the way in and may either let it continue
(return ``None``) or terminate it with a response. Stages that let a request
through get a chance to decorate the eventual response on the way out, in
reverse order. A terminating stage builds its own response completely; only
the stages before it see that response on the way out.

    request ──► stage[0] ──► stage[1] ──► ... ──► route handler
                   │            │
                   └── response returned early (preflight, 401, 403)
"""

import logging
from typing import List, Optional, Sequence

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .models import ErrorResponse

logger = logging.getLogger(__name__)


class RelayStage:
    """Base class for a stage of the edge pipeline."""

    name = "stage"

    async def on_request(self, request: Request) -> Optional[Response]:
        """Return a response to terminate the request, or None to continue."""
        return None

    def on_response(self, request: Request, response: Response) -> Response:
        """Decorate the response produced further down the pipeline."""
        return response


class RelayPipelineMiddleware(BaseHTTPMiddleware):
    """Apply a fixed sequence of RelayStage objects to every request."""

    def __init__(self, app, stages: Sequence[RelayStage]):
        super().__init__(app)
        self.stages: List[RelayStage] = list(stages)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        entered: List[RelayStage] = []
        response: Optional[Response] = None

        for stage in self.stages:
            response = await stage.on_request(request)
            if response is not None:
                logger.debug(
                    f"Request terminated by {stage.name} stage",
                    extra={
                        "path": request.url.path,
                        "method": request.method,
                        "status_code": response.status_code,
                    },
                )
                break
            entered.append(stage)

        if response is None:
            try:
                response = await call_next(request)
            except Exception as exc:
                logger.error(
                    f"Unhandled exception: {exc}",
                    extra={
                        "path": request.url.path,
                        "method": request.method,
                        "exception_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                # Built here so the entered stages still decorate it
                response = JSONResponse(
                    status_code=500,
                    content=ErrorResponse(message="internal server error").model_dump(),
                )

        for stage in reversed(entered):
            response = stage.on_response(request, response)

        return response
