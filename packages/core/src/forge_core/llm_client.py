"""
LLM Client - Facade over a single provider.

Provides a unified ``complete()`` call with retry and backoff for transient
errors, a hard timeout per completion, and error normalization into the
ProviderError family.
"""

import asyncio
import time
from typing import Any

from .config import Settings, get_settings
from .exceptions import ProviderError, ProviderNotConfiguredError, ProviderTimeoutError
from .llm_provider import BaseLLMProvider, LLMProviderType, LLMResponse
from .logging import get_logger
from .metrics import llm_request_duration_seconds, llm_requests_total

logger = get_logger(__name__)

# Status codes that are transient and should be retried
RETRY_STATUS_CODES = {429, 529}  # Rate limited, Overloaded

# Error keywords indicating transient overload
RETRY_ERROR_KEYWORDS = [
    "overloaded",
    "rate_limit",
    "too_many_requests",
    "capacity",
]


def _is_retryable_error(error: Exception) -> bool:
    """Check if error is transient and worth retrying."""
    error_str = str(error).lower()
    status_code = getattr(error, "status_code", None)

    if status_code in RETRY_STATUS_CODES:
        return True

    for keyword in RETRY_ERROR_KEYWORDS:
        if keyword in error_str:
            return True

    return False


def create_provider(
    provider: LLMProviderType | str,
    settings: Settings | None = None,
) -> BaseLLMProvider:
    """
    Build a provider from settings.

    Raises:
        ProviderNotConfiguredError: If the provider needs a key that is not set
    """
    settings = settings or get_settings()
    provider_type = LLMProviderType(provider)
    base_url = settings.llm.base_url

    if provider_type == LLMProviderType.ANTHROPIC:
        api_key = settings.api.anthropic_api_key.get_secret_value()
        if not api_key:
            raise ProviderNotConfiguredError("Anthropic API key not configured")
        from .providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(api_key=api_key, base_url=base_url)

    api_key = settings.api.openai_api_key.get_secret_value()
    if not api_key and not base_url:
        raise ProviderNotConfiguredError("OpenAI API key not configured")
    from .providers.openai_provider import OpenAIProvider
    return OpenAIProvider(api_key=api_key, base_url=base_url)


class LLMClient:
    """
    LLM Client with retry and timeout.

    Features:
    - Retry with exponential backoff for transient errors (429, 529)
    - Hard wall-clock timeout per completion
    - Provider exceptions normalized into ProviderError
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        model: str,
        *,
        max_tokens: int = 2000,
        temperature: float | None = 0.7,
        timeout: float = 300.0,
        max_retries: int = 3,
        retry_base_delay: float = 2.0,
        retry_max_delay: float = 30.0,
    ):
        self._provider = provider
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay

    @classmethod
    def from_settings(
        cls,
        provider: str | None = None,
        model: str | None = None,
        settings: Settings | None = None,
    ) -> "LLMClient":
        """Create a client for the configured (or requested) provider."""
        settings = settings or get_settings()
        llm = settings.llm
        return cls(
            create_provider(provider or llm.provider, settings),
            model or llm.model,
            max_tokens=llm.max_tokens,
            temperature=llm.temperature,
            timeout=llm.request_timeout,
            max_retries=llm.max_retries,
            retry_base_delay=llm.retry_base_delay,
            retry_max_delay=llm.retry_max_delay,
        )

    @property
    def provider_type(self) -> LLMProviderType:
        """Get the provider type."""
        return self._provider.provider_type

    async def complete(
        self,
        prompt: str,
        *,
        system: str = "",
        model: str | None = None,
    ) -> LLMResponse:
        """
        Request a completion for a single textual prompt.

        Args:
            prompt: Full prompt text, sent as one user message
            system: Optional system prompt
            model: Override the client's default model

        Returns:
            Normalized LLMResponse

        Raises:
            ProviderTimeoutError: If no answer arrives within the timeout
            ProviderError: For any other provider failure
        """
        provider_name = self._provider.provider_type.value
        messages = [{"role": "user", "content": prompt}]
        start = time.perf_counter()

        try:
            response = await asyncio.wait_for(
                self._call_with_retry(model or self.model, system, messages),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            llm_requests_total.labels(provider=provider_name, status="timeout").inc()
            logger.error("Model request timed out", provider=provider_name, timeout=self.timeout)
            raise ProviderTimeoutError(
                f"Model did not respond within {self.timeout:g}s",
                context={"provider": provider_name},
                cause=e,
            ) from e
        except ProviderError:
            llm_requests_total.labels(provider=provider_name, status="error").inc()
            raise
        except Exception as e:
            llm_requests_total.labels(provider=provider_name, status="error").inc()
            logger.error("Model request failed", provider=provider_name, error=str(e)[:200])
            raise ProviderError(
                f"Model request failed: {e}",
                context={"provider": provider_name},
                cause=e,
            ) from e

        duration = time.perf_counter() - start
        llm_requests_total.labels(provider=provider_name, status="success").inc()
        llm_request_duration_seconds.labels(provider=provider_name).observe(duration)
        logger.debug(
            "Model response received",
            provider=provider_name,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            duration=round(duration, 3),
        )
        return response

    async def _call_with_retry(
        self,
        model: str,
        system: str,
        messages: list[dict[str, Any]],
    ) -> LLMResponse:
        """
        Call the provider with retry for transient errors.

        Retries with exponential backoff for rate limits (429) and
        overloaded (529). Raises immediately for anything else.
        """
        for attempt in range(self.max_retries + 1):
            try:
                return await self._provider.create_message(
                    model=model,
                    max_tokens=self.max_tokens,
                    system=system,
                    messages=messages,
                    temperature=self.temperature,
                )
            except Exception as e:
                if _is_retryable_error(e) and attempt < self.max_retries:
                    delay = min(self.retry_base_delay * (2 ** attempt), self.retry_max_delay)
                    logger.warning(
                        "Retryable error, backing off",
                        provider=self._provider.provider_type.value,
                        attempt=attempt + 1,
                        max_retries=self.max_retries,
                        delay=delay,
                        error=str(e)[:100],
                    )
                    await asyncio.sleep(delay)
                    continue
                raise

        raise ProviderError("Model request retries exhausted")
