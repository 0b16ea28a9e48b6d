"""Health check response schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Schema for the health check response."""

    status: str = Field(..., description="'ok', or 'shutting down' during shutdown")
    timestamp: datetime = Field(..., description="Time of the check (UTC)")
    metrics_endpoint: str = Field(..., description="Path serving the metrics")
