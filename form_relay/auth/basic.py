"""
HTTP Basic Authentication
=========================

Single-tenant credential check for the relay. Every non-preflight request
must present ``Authorization: Basic <base64(user:pass)>`` matching the one
configured pair; there is no user directory and no session.

Failed attempts are normal traffic for a public endpoint and are only logged
at debug level.
"""

import base64
import binascii
import logging
import secrets
from typing import Iterable, Optional

from fastapi.security import HTTPBasicCredentials
from fastapi.security.utils import get_authorization_scheme_param
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..config import Settings
from ..models import ErrorResponse
from ..pipeline import RelayStage

logger = logging.getLogger(__name__)


def parse_basic_credentials(authorization: Optional[str]) -> Optional[HTTPBasicCredentials]:
    """
    Decode a Basic Authorization header value.

    Args:
        authorization: Raw Authorization header value

    Returns:
        Decoded credentials, or None if the header is missing, uses another
        scheme, or is not valid base64 'user:pass'
    """
    scheme, param = get_authorization_scheme_param(authorization)
    if not authorization or scheme.lower() != "basic":
        return None

    try:
        decoded = base64.b64decode(param, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    username, separator, password = decoded.partition(":")
    if not separator:
        return None

    return HTTPBasicCredentials(username=username, password=password)


class BasicAuthGate:
    """Compare presented credentials against the configured pair."""

    def __init__(self, username: str, password: str, realm: str = "Protected"):
        self._username = username.encode("utf-8")
        self._password = password.encode("utf-8")
        self.realm = realm

    @classmethod
    def from_settings(cls, settings: Settings) -> "BasicAuthGate":
        return cls(settings.BASIC_USER, settings.BASIC_PASS, realm=settings.BASIC_REALM)

    def verify(self, credentials: Optional[HTTPBasicCredentials]) -> bool:
        if credentials is None:
            return False

        # Both comparisons always run
        user_ok = secrets.compare_digest(credentials.username.encode("utf-8"), self._username)
        pass_ok = secrets.compare_digest(credentials.password.encode("utf-8"), self._password)
        return user_ok and pass_ok

    def challenge(self) -> Response:
        return JSONResponse(
            status_code=401,
            content=ErrorResponse(message="unauthorized").model_dump(),
            headers={"WWW-Authenticate": f'Basic realm="{self.realm}"'},
        )


class BasicAuthStage(RelayStage):
    """
    Pipeline stage that challenges unauthenticated requests.

    Preflight requests pass untouched; the CORS stage ahead of this one
    answers them before they get here.
    """

    name = "basic_auth"

    def __init__(self, gate: BasicAuthGate, exempt_paths: Iterable[str] = ()):
        self.gate = gate
        self.exempt_paths = frozenset(exempt_paths)

    async def on_request(self, request: Request) -> Optional[Response]:
        if request.method == "OPTIONS" or request.url.path in self.exempt_paths:
            return None

        credentials = parse_basic_credentials(request.headers.get("Authorization"))
        if self.gate.verify(credentials):
            return None

        logger.debug(
            "Basic auth challenge issued",
            extra={
                "path": request.url.path,
                "credentials_present": credentials is not None,
            },
        )
        return self.gate.challenge()
