"""
LLM provider implementations.
"""

from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "OpenAIProvider",
]
