"""
Configuration module for the Form Relay service.

This module uses Pydantic Settings to load and validate environment variables
for the upstream endpoint, token injection, Basic Auth credentials, CORS
policy and server binding.

Settings are read from the process environment only. The resulting object is
frozen: it is built once at startup and handed to the application factory.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


WILDCARD_ORIGIN = "*"

DEFAULT_BASIC_USER = "admin"
DEFAULT_BASIC_PASS = "password"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Only APPS_SCRIPT_URL is required. The Basic Auth defaults are placeholders
    and must be overridden in any real deployment.
    """

    # =========================================================================
    # Upstream Configuration
    # =========================================================================

    APPS_SCRIPT_URL: HttpUrl = Field(
        ...,
        description="Upstream URL every relayed form is POSTed to",
    )

    INJECT_TOKEN: Optional[str] = Field(
        default=None,
        description="Server-side token that replaces any client-supplied 'token' field",
    )

    UPSTREAM_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Overall timeout for the upstream call",
        gt=0,
    )

    UPSTREAM_CONNECT_TIMEOUT_SECONDS: float = Field(
        default=10.0,
        description="Connect timeout for the upstream call",
        gt=0,
    )

    # =========================================================================
    # Edge Policy
    # =========================================================================

    ALLOWED_ORIGIN: str = Field(
        default=WILDCARD_ORIGIN,
        description="'*' to admit any origin, or one exact origin (e.g. https://site.netlify.app)",
    )

    CORS_MAX_AGE: int = Field(
        default=600,
        description="Seconds a browser may cache a preflight answer",
        ge=0,
    )

    BASIC_USER: str = Field(default=DEFAULT_BASIC_USER, min_length=1)

    BASIC_PASS: str = Field(default=DEFAULT_BASIC_PASS, min_length=1)

    BASIC_REALM: str = Field(default="Protected", min_length=1)

    HEALTH_REQUIRES_AUTH: bool = Field(
        default=False,
        description="Put /health behind the Basic Auth gate",
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================

    HOST: str = Field(default="0.0.0.0")

    PORT: int = Field(default=3000, ge=1, le=65535)

    LOG_LEVEL: str = Field(default="INFO")

    # =========================================================================
    # Pydantic Settings Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def upstream_url(self) -> str:
        """Upstream URL as a plain string for the HTTP client."""
        return str(self.APPS_SCRIPT_URL)

    @property
    def allows_any_origin(self) -> bool:
        return self.ALLOWED_ORIGIN == WILDCARD_ORIGIN

    @property
    def auth_exempt_paths(self) -> List[str]:
        if self.HEALTH_REQUIRES_AUTH:
            return []
        return ["/health"]

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("INJECT_TOKEN", mode="before")
    @classmethod
    def blank_token_is_unset(cls, v: Optional[str]) -> Optional[str]:
        """A blank INJECT_TOKEN means no token is injected. Other values are kept as given."""
        if v is None:
            return None
        return v if str(v).strip() else None

    @field_validator("ALLOWED_ORIGIN")
    @classmethod
    def validate_allowed_origin(cls, v: str) -> str:
        """
        Validate ALLOWED_ORIGIN is either the wildcard or a single origin.

        Raises:
            ValueError: If the value is empty, a list, or carries a path
        """
        v = v.strip()
        if not v:
            return WILDCARD_ORIGIN
        if v == WILDCARD_ORIGIN:
            return v

        if "," in v or " " in v:
            raise ValueError(
                f"ALLOWED_ORIGIN must be '*' or a single origin, got: '{v}'"
            )

        scheme, sep, rest = v.partition("://")
        if not sep or not scheme or not rest or "/" in rest:
            raise ValueError(
                f"Invalid origin format: '{v}'. "
                "Expected format: 'https://example.com'"
            )

        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in allowed_levels:
            raise ValueError(f"LOG_LEVEL must be one of {allowed_levels}, got: {v}")
        return v


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    Raises:
        ValidationError: If APPS_SCRIPT_URL is missing or any value is invalid.
    """
    return Settings()


# =============================================================================
# Configuration Helpers
# =============================================================================

def validate_configuration(settings: Settings) -> dict:
    """
    Inspect loaded settings and return a status report.

    Settings that loaded successfully are always usable; this only surfaces
    deployment risks worth a warning at startup.

    Example:
        >>> status = validate_configuration(get_settings())
        >>> for warning in status["warnings"]:
        ...     print(warning)
    """
    warnings = []

    if (
        settings.BASIC_USER == DEFAULT_BASIC_USER
        or settings.BASIC_PASS == DEFAULT_BASIC_PASS
    ):
        warnings.append("BASIC_USER/BASIC_PASS use the insecure default credentials")

    if settings.allows_any_origin:
        warnings.append("ALLOWED_ORIGIN is '*'; any website may call the relay")

    if settings.APPS_SCRIPT_URL.scheme == "http":
        warnings.append("APPS_SCRIPT_URL uses plain http; relayed tokens travel unencrypted")

    return {
        "warnings": warnings,
        "token_injection": settings.INJECT_TOKEN is not None,
        "allowed_origin": settings.ALLOWED_ORIGIN,
        "upstream_timeout_seconds": settings.UPSTREAM_TIMEOUT_SECONDS,
    }
