"""
Shared fixtures for the form relay tests.

The upstream HTTP client is replaced through FastAPI dependency overrides, so
no test ever opens a network connection. TestClient is used without a
``with`` block, which leaves the application lifespan (and its real client)
out of the picture.
"""

from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from form_relay.main import create_app
from form_relay.proxy import get_upstream_client

from .helpers import BASIC_PASS, BASIC_USER, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def upstream_response():
    return httpx.Response(
        200,
        content=b'{"ok":true}',
        headers={"content-type": "application/json"},
    )


@pytest.fixture
def mock_upstream_client(upstream_response):
    """Create mock upstream HTTP client"""
    client = AsyncMock()
    client.post = AsyncMock(return_value=upstream_response)
    return client


@pytest.fixture
def app(settings, mock_upstream_client):
    """Create test FastAPI application"""
    app = create_app(settings)
    app.dependency_overrides[get_upstream_client] = lambda: mock_upstream_client
    return app


@pytest.fixture
def client(app):
    """Create test client"""
    return TestClient(app)


@pytest.fixture
def basic_auth():
    return (BASIC_USER, BASIC_PASS)
