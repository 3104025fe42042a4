"""Tests for the LLM client facade."""

import asyncio

import pytest
from pydantic import SecretStr

from forge_core import (
    BaseLLMProvider,
    LLMClient,
    LLMProviderType,
    LLMResponse,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderTimeoutError,
    Settings,
    create_provider,
)
from forge_core.llm_client import _is_retryable_error


class StatusError(Exception):
    """Provider error carrying an HTTP status."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class ScriptedProvider(BaseLLMProvider):
    """Provider that replays a list of responses or exceptions."""

    provider_type = LLMProviderType.ANTHROPIC

    def __init__(self, script, delay: float = 0.0):
        self.script = list(script)
        self.delay = delay
        self.calls = []

    async def create_message(self, model, max_tokens, system, messages, temperature=None):
        self.calls.append(
            {"model": model, "max_tokens": max_tokens, "system": system, "messages": messages}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return LLMResponse(text_content=item, model=model)


def make_client(provider, **kwargs) -> LLMClient:
    kwargs.setdefault("retry_base_delay", 0.0)
    kwargs.setdefault("retry_max_delay", 0.0)
    return LLMClient(provider, "test-model", **kwargs)


class TestRetryClassification:
    """Tests for transient error detection."""

    def test_rate_limit_status_is_retryable(self):
        assert _is_retryable_error(StatusError("slow down", 429))

    def test_overloaded_status_is_retryable(self):
        assert _is_retryable_error(StatusError("busy", 529))

    def test_keyword_is_retryable(self):
        assert _is_retryable_error(Exception("Service overloaded, try later"))

    def test_other_errors_are_not_retryable(self):
        assert not _is_retryable_error(StatusError("bad request", 400))
        assert not _is_retryable_error(ValueError("broken"))


class TestCreateProvider:
    """Tests for provider construction from settings."""

    def test_anthropic_without_key_is_not_configured(self):
        settings = Settings()
        settings.api.anthropic_api_key = SecretStr("")
        with pytest.raises(ProviderNotConfiguredError):
            create_provider("anthropic", settings)

    def test_openai_without_key_or_base_url_is_not_configured(self):
        settings = Settings()
        settings.api.openai_api_key = SecretStr("")
        settings.llm.base_url = None
        with pytest.raises(ProviderNotConfiguredError):
            create_provider("openai", settings)

    def test_openai_compatible_endpoint_needs_no_key(self):
        settings = Settings()
        settings.api.openai_api_key = SecretStr("")
        settings.llm.base_url = "http://localhost:11434/v1"
        provider = create_provider("openai", settings)
        assert provider.provider_type == LLMProviderType.OPENAI

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValueError):
            create_provider("carrier-pigeon", Settings())


@pytest.mark.asyncio
class TestLLMClientComplete:
    """Tests for LLMClient.complete."""

    async def test_prompt_sent_as_single_user_message(self):
        provider = ScriptedProvider(["hello"])
        client = make_client(provider)

        response = await client.complete("the prompt")

        assert response.text_content == "hello"
        assert provider.calls[0]["messages"] == [{"role": "user", "content": "the prompt"}]
        assert provider.calls[0]["model"] == "test-model"
        assert provider.calls[0]["max_tokens"] == 2000

    async def test_model_override(self):
        provider = ScriptedProvider(["ok"])
        client = make_client(provider)

        response = await client.complete("p", model="other-model")

        assert provider.calls[0]["model"] == "other-model"
        assert response.model == "other-model"

    async def test_retries_transient_errors(self):
        provider = ScriptedProvider([StatusError("rate limited", 429), "recovered"])
        client = make_client(provider, max_retries=2)

        response = await client.complete("p")

        assert response.text_content == "recovered"
        assert len(provider.calls) == 2

    async def test_gives_up_after_max_retries(self):
        provider = ScriptedProvider([StatusError("overloaded", 529)] * 3)
        client = make_client(provider, max_retries=2)

        with pytest.raises(ProviderError) as exc_info:
            await client.complete("p")

        assert len(provider.calls) == 3
        assert isinstance(exc_info.value.__cause__, StatusError)

    async def test_non_transient_error_is_wrapped_immediately(self):
        provider = ScriptedProvider([StatusError("invalid request", 400), "unused"])
        client = make_client(provider, max_retries=3)

        with pytest.raises(ProviderError) as exc_info:
            await client.complete("p")

        assert len(provider.calls) == 1
        assert "invalid request" in exc_info.value.message
        assert not isinstance(exc_info.value, ProviderTimeoutError)

    async def test_timeout_raises_provider_timeout(self):
        provider = ScriptedProvider(["too late"], delay=1.0)
        client = make_client(provider, timeout=0.05)

        with pytest.raises(ProviderTimeoutError) as exc_info:
            await client.complete("p")

        assert exc_info.value.status_code == 504
        assert exc_info.value.fatal
