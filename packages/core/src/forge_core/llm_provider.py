"""
LLM Provider abstraction - Normalized types for multi-provider support.

Provides a common interface for different LLM providers (Anthropic, OpenAI)
with a unified response type.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any


class LLMProviderType(str, Enum):
    """Supported LLM providers."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"


@dataclass
class LLMResponse:
    """Normalized response from any LLM provider."""

    text_content: str
    stop_reason: str = "end_turn"
    input_tokens: int = 0
    output_tokens: int = 0
    provider: LLMProviderType = LLMProviderType.ANTHROPIC
    model: str = ""


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    provider_type: LLMProviderType

    @abstractmethod
    async def create_message(
        self,
        model: str,
        max_tokens: int,
        system: str,
        messages: list[dict[str, Any]],
        temperature: float | None = None,
    ) -> LLMResponse:
        """
        Create a message/completion.

        Args:
            model: Model identifier
            max_tokens: Maximum tokens in response
            system: System prompt (may be empty)
            messages: Conversation messages as role/content dicts
            temperature: Sampling temperature

        Returns:
            Normalized LLMResponse
        """
        ...
