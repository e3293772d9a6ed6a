"""Helpers shared by the form relay test modules."""

from typing import Dict, List, Tuple
from unittest.mock import AsyncMock

from form_relay.config import Settings

UPSTREAM_URL = "https://upstream.example/exec"
BASIC_USER = "relay-user"
BASIC_PASS = "relay-pass-123"


def make_settings(**overrides) -> Settings:
    values = {
        "APPS_SCRIPT_URL": UPSTREAM_URL,
        "BASIC_USER": BASIC_USER,
        "BASIC_PASS": BASIC_PASS,
    }
    values.update(overrides)
    return Settings(**values)


def multipart_fields(fields: Dict[str, str]) -> List[Tuple[str, Tuple[None, str]]]:
    """Encode plain text fields so TestClient sends multipart/form-data."""
    return [(name, (None, value)) for name, value in fields.items()]


def sent_fields(upstream_client: AsyncMock) -> List[Tuple[str, str]]:
    """Fields handed to the upstream client's post() call."""
    files = upstream_client.post.call_args.kwargs["files"]
    return [(name, value) for name, (_, value) in files]
