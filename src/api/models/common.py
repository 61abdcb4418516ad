"""
Common API models used across different endpoints.

These models represent shared concepts like errors and health responses.
"""

from datetime import datetime, timezone
from pydantic import BaseModel, Field
from typing import Any, Optional


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class APIError(BaseModel):
    """Standard error response format."""
    error: str = Field(..., description="Error message")
    error_code: str = Field(..., description="Machine-readable error code")
    details: Optional[Any] = Field(None, description="Additional error details")
    timestamp: str = Field(default_factory=utc_timestamp)


class HealthStatus(BaseModel):
    """Health check response."""
    status: str = Field("OK", description="Service status")
    timestamp: str = Field(default_factory=utc_timestamp)
