"""Common types used across all models."""

from datetime import datetime, timezone
from typing import Any

from pydantic import Field

from .base import BridgeBaseModel


class ErrorResponse(BridgeBaseModel):
    """Standard error response format."""

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional error context")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
