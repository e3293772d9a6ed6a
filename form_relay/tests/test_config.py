"""
Configuration Tests

Tests environment loading, defaults, validation, immutability of the
settings snapshot, and the fatal startup path when the upstream URL is
missing.
"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from form_relay import main as main_module
from form_relay.config import Settings, get_settings, validate_configuration

from .helpers import UPSTREAM_URL, make_settings

RELAY_ENV_VARS = [
    "APPS_SCRIPT_URL",
    "INJECT_TOKEN",
    "ALLOWED_ORIGIN",
    "BASIC_USER",
    "BASIC_PASS",
    "BASIC_REALM",
    "HEALTH_REQUIRES_AUTH",
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "CORS_MAX_AGE",
    "UPSTREAM_TIMEOUT_SECONDS",
    "UPSTREAM_CONNECT_TIMEOUT_SECONDS",
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Start every test from an environment with no relay settings"""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================================
# Loading Tests
# ============================================================================

def test_missing_upstream_url_is_fatal():
    with pytest.raises(ValidationError) as exc_info:
        Settings()

    assert "APPS_SCRIPT_URL" in str(exc_info.value)


def test_defaults(monkeypatch):
    monkeypatch.setenv("APPS_SCRIPT_URL", UPSTREAM_URL)

    settings = Settings()

    assert settings.upstream_url == UPSTREAM_URL
    assert settings.INJECT_TOKEN is None
    assert settings.ALLOWED_ORIGIN == "*"
    assert settings.allows_any_origin
    assert settings.BASIC_USER == "admin"
    assert settings.BASIC_PASS == "password"
    assert settings.BASIC_REALM == "Protected"
    assert settings.PORT == 3000
    assert settings.HEALTH_REQUIRES_AUTH is False
    assert settings.UPSTREAM_TIMEOUT_SECONDS == 30.0
    assert settings.auth_exempt_paths == ["/health"]


def test_values_read_from_environment(monkeypatch):
    monkeypatch.setenv("APPS_SCRIPT_URL", UPSTREAM_URL)
    monkeypatch.setenv("INJECT_TOKEN", "secret123")
    monkeypatch.setenv("ALLOWED_ORIGIN", "https://expenses.netlify.app")
    monkeypatch.setenv("BASIC_USER", "alice")
    monkeypatch.setenv("BASIC_PASS", "wonderland")
    monkeypatch.setenv("PORT", "8081")
    monkeypatch.setenv("HEALTH_REQUIRES_AUTH", "true")

    settings = get_settings()

    assert settings.INJECT_TOKEN == "secret123"
    assert settings.ALLOWED_ORIGIN == "https://expenses.netlify.app"
    assert not settings.allows_any_origin
    assert settings.BASIC_USER == "alice"
    assert settings.BASIC_PASS == "wonderland"
    assert settings.PORT == 8081
    assert settings.auth_exempt_paths == []


@pytest.mark.parametrize("raw", ["", "   "])
def test_blank_inject_token_means_unset(raw):
    assert make_settings(INJECT_TOKEN=raw).INJECT_TOKEN is None


def test_inject_token_kept_verbatim():
    assert make_settings(INJECT_TOKEN=" secret123 ").INJECT_TOKEN == " secret123 "


def test_blank_allowed_origin_falls_back_to_wildcard():
    assert make_settings(ALLOWED_ORIGIN="").ALLOWED_ORIGIN == "*"


@pytest.mark.parametrize(
    "origin",
    [
        "https://a.example,https://b.example",
        "expenses.netlify.app",
        "https://expenses.netlify.app/form",
    ],
)
def test_invalid_allowed_origin_rejected(origin):
    with pytest.raises(ValidationError):
        make_settings(ALLOWED_ORIGIN=origin)


@pytest.mark.parametrize("url", ["not a url", "ftp://upstream.example/exec"])
def test_invalid_upstream_url_rejected(url):
    with pytest.raises(ValidationError):
        make_settings(APPS_SCRIPT_URL=url)


def test_log_level_normalised():
    assert make_settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"


def test_settings_are_immutable():
    settings = make_settings()

    with pytest.raises(ValidationError):
        settings.INJECT_TOKEN = "changed-at-runtime"


# ============================================================================
# Configuration Report Tests
# ============================================================================

def test_report_warns_about_insecure_defaults():
    settings = make_settings(BASIC_USER="admin", BASIC_PASS="password", ALLOWED_ORIGIN="*")

    report = validate_configuration(settings)

    assert any("default credentials" in warning for warning in report["warnings"])
    assert any("ALLOWED_ORIGIN" in warning for warning in report["warnings"])


def test_report_clean_for_hardened_settings():
    settings = make_settings(ALLOWED_ORIGIN="https://expenses.netlify.app", INJECT_TOKEN="s")

    report = validate_configuration(settings)

    assert report["warnings"] == []
    assert report["token_injection"] is True


def test_report_warns_about_plain_http_upstream():
    settings = make_settings(APPS_SCRIPT_URL="http://upstream.example/exec")

    report = validate_configuration(settings)

    assert any("plain http" in warning for warning in report["warnings"])


# ============================================================================
# Startup Tests
# ============================================================================

def test_main_exits_when_upstream_url_missing():
    with patch.object(main_module.uvicorn, "run") as run, \
            patch.object(main_module, "setup_logging"):
        with pytest.raises(SystemExit) as exc_info:
            main_module.main()

    assert exc_info.value.code == 1
    run.assert_not_called()


def test_main_serves_on_configured_port(monkeypatch):
    monkeypatch.setenv("APPS_SCRIPT_URL", UPSTREAM_URL)
    monkeypatch.setenv("PORT", "4010")

    with patch.object(main_module.uvicorn, "run") as run, \
            patch.object(main_module, "setup_logging"):
        main_module.main()

    run.assert_called_once()
    assert run.call_args.kwargs["port"] == 4010
    assert run.call_args.kwargs["host"] == "0.0.0.0"
