"""
Form handling for the relay: reading the inbound multipart fields, applying
the token-injection rule, and shaping the outbound multipart payload.

Forms are kept as ordered lists of (name, value) pairs so field order and
repeated names survive the round trip.
"""

import secrets
from typing import Iterable, List, Optional, Tuple

from starlette.datastructures import FormData

TOKEN_FIELD = "token"

FormFields = List[Tuple[str, str]]


class FileFieldNotSupported(ValueError):
    """Raised when the inbound multipart body carries a file part."""

    def __init__(self, field_name: str):
        super().__init__(f"File part '{field_name}' is not supported")
        self.field_name = field_name


def read_inbound_fields(form: FormData) -> FormFields:
    """
    Flatten parsed multipart data into text fields.

    Raises:
        FileFieldNotSupported: If any part is a file upload
    """
    fields: FormFields = []
    for name, value in form.multi_items():
        if not isinstance(value, str):
            raise FileFieldNotSupported(name)
        fields.append((name, value))
    return fields


def build_outbound_fields(inbound: Iterable[Tuple[str, str]], inject_token: Optional[str]) -> FormFields:
    """
    Apply the token-injection rule and copy every other field verbatim.

    With an injected token configured it becomes the only ``token`` field
    and is placed first; client-supplied ``token`` values are dropped.
    Without one, client ``token`` values pass through like any other field.

    Args:
        inbound: Fields decoded from the client's request
        inject_token: Server-held token, or None

    Returns:
        Fields to send upstream
    """
    outbound: FormFields = []
    if inject_token is not None:
        outbound.append((TOKEN_FIELD, inject_token))

    for name, value in inbound:
        if name == TOKEN_FIELD and inject_token is not None:
            continue
        outbound.append((name, value))

    return outbound


def to_multipart_files(fields: Iterable[Tuple[str, str]]) -> List[Tuple[str, Tuple[None, str]]]:
    """
    Shape text fields for httpx's ``files=`` argument.

    A ``None`` filename makes httpx emit a plain form-data part, so the body
    is multipart/form-data even though no file is attached.
    """
    return [(name, (None, value)) for name, value in fields]


def empty_multipart_body() -> Tuple[bytes, str]:
    """
    Encode a multipart/form-data body with no parts.

    httpx sends no body at all for an empty ``files=`` list, so a form
    without fields is written out as a bare closing boundary.

    Returns:
        The body bytes and the matching Content-Type header value
    """
    boundary = secrets.token_hex(16)
    return f"--{boundary}--\r\n".encode("ascii"), f"multipart/form-data; boundary={boundary}"
