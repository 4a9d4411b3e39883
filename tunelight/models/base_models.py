"""Pydantic models for health responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str
    version: str


class DetailedHealthResponse(BaseModel):
    """Component state snapshot for the readiness endpoint."""

    status: str = Field(..., description="Overall status: ready or degraded")
    version: str = Field(..., description="Application version")
    timestamp: datetime = Field(..., description="Current server timestamp")
    checks: dict[str, str] = Field(..., description="Individual component states")


class ErrorDetail(BaseModel):
    """Body of a structured error."""

    code: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """Error response envelope returned by the exception handlers."""

    error: ErrorDetail
