from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """
    Success envelope shared by every endpoint.

    Example:
        ```json
        {
            "success": true,
            "data": {...}
        }
        ```
    """

    success: bool = True
    data: T | None = None


class ErrorResponse(BaseModel):
    """
    Standard error envelope.

    Example:
        ```json
        {
            "success": false,
            "error": "Invalid request format: user_request.original_prompt is required",
            "type": "validation",
            "details": null,
            "timestamp": "2026-01-21T10:30:00Z"
        }
        ```
    """

    success: bool = False
    error: str = Field(..., description="Human-readable error message")
    type: str | None = Field(None, description="Failure category (validation, llm, schema, storage, analysis)")
    details: Any | None = Field(None, description="Additional error context")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC), description="Error occurrence time")


__all__ = ["ApiResponse", "ErrorResponse"]
