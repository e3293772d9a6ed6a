"""
Data Models Module

Pydantic models for the fixed JSON payloads the relay produces itself.
Upstream responses are relayed as raw bytes and have no model.
"""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Liveness payload for GET /health."""
    status: Literal["ok"] = Field(default="ok", description="Always 'ok' while the process serves requests")


class ErrorResponse(BaseModel):
    """Error payload for failures raised by the relay (never by the upstream)."""
    status: Literal["error"] = Field(default="error")
    message: str = Field(..., description="Generic, non-sensitive description of the failure")
