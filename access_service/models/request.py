"""Shared response models."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    timestamp: str = Field(..., description="Current timestamp")


class ErrorBody(BaseModel):
    code: str
    message: str
    recovery_hint: str | None = None


class ErrorResponse(BaseModel):
    """Body of every non-2xx response produced by the service."""

    error: ErrorBody
