"""
Botanica Backend — Shared Response Schemas
============================================

Error envelope and health payload, shared by every router.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "access_denied",
            "message": "Access denied. jo@example.com is not a registered admin. ...",
            "details": {"login_url": "/api/admin/login"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """Service and dependency status returned by GET /health."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    storage: str = Field(description="Image bucket status: accessible, missing, unavailable")
    storage_message: Optional[str] = Field(
        default=None, description="Why the bucket is not accessible (null when it is)"
    )
    uptime_seconds: float = Field(description="Seconds since service started")
