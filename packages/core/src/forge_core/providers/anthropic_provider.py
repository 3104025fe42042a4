"""
Anthropic Provider - Wraps AsyncAnthropic with normalized response types.
"""

from typing import Any

from anthropic import AsyncAnthropic

from ..llm_provider import (
    BaseLLMProvider,
    LLMProviderType,
    LLMResponse,
)


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude provider."""

    provider_type = LLMProviderType.ANTHROPIC

    def __init__(self, api_key: str, base_url: str | None = None):
        self._client = AsyncAnthropic(api_key=api_key, base_url=base_url)

    async def create_message(
        self,
        model: str,
        max_tokens: int,
        system: str,
        messages: list[dict[str, Any]],
        temperature: float | None = None,
    ) -> LLMResponse:
        """Create a message using Claude API."""
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": messages,
        }

        if system:
            kwargs["system"] = system

        if temperature is not None:
            kwargs["temperature"] = temperature

        response = await self._client.messages.create(**kwargs)

        text_content = ""
        for block in response.content:
            if block.type == "text":
                text_content += block.text

        return LLMResponse(
            text_content=text_content,
            stop_reason=response.stop_reason or "end_turn",
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            provider=LLMProviderType.ANTHROPIC,
            model=model,
        )
