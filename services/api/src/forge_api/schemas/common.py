"""
Common response schemas.
"""

from typing import Any

from pydantic import BaseModel


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool = True
    message: str = "Operation completed successfully"
    data: Any = None


class ErrorResponse(BaseModel):
    """Error response schema."""

    error: str
    message: str
    context: dict[str, Any] = {}
