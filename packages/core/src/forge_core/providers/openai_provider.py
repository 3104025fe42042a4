"""
OpenAI Provider - Wraps AsyncOpenAI.

Also serves OpenAI-compatible endpoints (Moonshot/Kimi, Ollama) through
``base_url``.
"""

from typing import Any

from openai import AsyncOpenAI

from ..llm_provider import (
    BaseLLMProvider,
    LLMProviderType,
    LLMResponse,
)


class OpenAIProvider(BaseLLMProvider):
    """OpenAI GPT provider."""

    provider_type = LLMProviderType.OPENAI

    # Models that use max_completion_tokens instead of max_tokens
    _COMPLETION_TOKEN_MODELS = {"gpt-5.2", "gpt-5", "gpt-5-mini", "gpt-5-nano"}

    def __init__(self, api_key: str, base_url: str | None = None):
        # Local servers such as Ollama accept any key
        self._client = AsyncOpenAI(api_key=api_key or "not-needed", base_url=base_url)

    def _uses_completion_tokens(self, model: str) -> bool:
        """Check if model uses max_completion_tokens instead of max_tokens."""
        return model.startswith("o") or model in self._COMPLETION_TOKEN_MODELS

    async def create_message(
        self,
        model: str,
        max_tokens: int,
        system: str,
        messages: list[dict[str, Any]],
        temperature: float | None = None,
    ) -> LLMResponse:
        """Create a message using the chat completions API."""
        openai_messages: list[dict[str, Any]] = []
        if system:
            openai_messages.append({"role": "system", "content": system})
        openai_messages.extend(messages)

        token_param = "max_completion_tokens" if self._uses_completion_tokens(model) else "max_tokens"
        api_kwargs: dict[str, Any] = {
            "model": model,
            token_param: max_tokens,
            "messages": openai_messages,
        }
        # Reasoning models reject a custom temperature
        if temperature is not None and token_param == "max_tokens":
            api_kwargs["temperature"] = temperature

        response = await self._client.chat.completions.create(**api_kwargs)

        choice = response.choices[0]
        usage = response.usage

        return LLMResponse(
            text_content=choice.message.content or "",
            stop_reason=choice.finish_reason or "stop",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            provider=LLMProviderType.OPENAI,
            model=model,
        )
