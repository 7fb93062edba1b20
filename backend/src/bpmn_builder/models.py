"""API-specific response models."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """JSON body returned when the chat relay fails."""

    error: str = Field(..., description="User-facing error message")


class HealthResponse(BaseModel):
    """Response model for the health check."""

    status: str = "healthy"
    mock_backend: bool = False
