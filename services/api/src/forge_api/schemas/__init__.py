"""
API request/response schemas.
"""

from .common import ErrorResponse, SuccessResponse
from .generate import GenerateRequest, ProviderInfo

__all__ = [
    "ErrorResponse",
    "GenerateRequest",
    "ProviderInfo",
    "SuccessResponse",
]
