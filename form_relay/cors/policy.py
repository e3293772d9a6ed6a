"""
CORS Policy
===========

Origin admission and access-control headers for the relay.

The allowed-origin setting is either the wildcard ``*`` or one exact origin.
Requests without an ``Origin`` header come from the same origin or from a
non-browser caller and are always admitted. A declared origin that does not
match is rejected outright (403) instead of merely omitting the headers.

Credentials are allowed, and browsers refuse ``Access-Control-Allow-Origin: *``
on credentialed requests, so in wildcard mode the caller's origin is echoed
back when one is declared.
"""

import logging
from typing import Dict, Optional

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..config import WILDCARD_ORIGIN, Settings
from ..models import ErrorResponse
from ..pipeline import RelayStage

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "OPTIONS")
ALLOWED_HEADERS = ("Content-Type", "Authorization", "Accept")


class CorsPolicy:
    """
    Decide whether an origin is admitted and which headers to emit.

    Attributes:
        allowed_origin: '*' or a single exact origin string
        max_age: seconds a browser may cache a preflight answer
    """

    def __init__(self, allowed_origin: str = WILDCARD_ORIGIN, max_age: int = 600):
        self.allowed_origin = allowed_origin
        self.max_age = max_age

    @classmethod
    def from_settings(cls, settings: Settings) -> "CorsPolicy":
        return cls(allowed_origin=settings.ALLOWED_ORIGIN, max_age=settings.CORS_MAX_AGE)

    @property
    def allows_any_origin(self) -> bool:
        return self.allowed_origin == WILDCARD_ORIGIN

    def is_allowed(self, origin: Optional[str]) -> bool:
        if not origin or self.allows_any_origin:
            return True
        return origin == self.allowed_origin

    def allow_origin_value(self, origin: Optional[str]) -> str:
        if self.allows_any_origin:
            return origin or WILDCARD_ORIGIN
        return self.allowed_origin

    def headers_for(self, origin: Optional[str], preflight: bool = False) -> Dict[str, str]:
        """
        Build the access-control headers for an admitted origin.

        Args:
            origin: Value of the request's Origin header, if any
            preflight: Include the preflight cache lifetime

        Returns:
            Header name to value mapping
        """
        headers = {
            "Access-Control-Allow-Origin": self.allow_origin_value(origin),
            "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
            "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
            "Access-Control-Allow-Credentials": "true",
        }
        if preflight:
            headers["Access-Control-Max-Age"] = str(self.max_age)
        return headers


class CorsStage(RelayStage):
    """
    First stage of the edge pipeline.

    Answers preflight requests itself, so they never reach the auth gate, and
    stamps the access-control headers on every other admitted response.
    """

    name = "cors"

    def __init__(self, policy: CorsPolicy):
        self.policy = policy

    async def on_request(self, request: Request) -> Optional[Response]:
        origin = request.headers.get("origin")

        if not self.policy.is_allowed(origin):
            logger.warning(
                "Rejected request from disallowed origin",
                extra={
                    "origin": origin,
                    "path": request.url.path,
                    "method": request.method,
                },
            )
            response = JSONResponse(
                status_code=403,
                content=ErrorResponse(message="origin not allowed").model_dump(),
            )
            response.headers.add_vary_header("Origin")
            return response

        if request.method == "OPTIONS":
            response = Response(
                status_code=204,
                headers=self.policy.headers_for(origin, preflight=True),
            )
            response.headers.add_vary_header("Origin")
            return response

        return None

    def on_response(self, request: Request, response: Response) -> Response:
        origin = request.headers.get("origin")
        response.headers.update(self.policy.headers_for(origin))
        response.headers.add_vary_header("Origin")
        return response
