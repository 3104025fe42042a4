"""
Model provider routes.
"""

from fastapi import APIRouter

from forge_core import LLMProviderType, get_settings

from ..schemas import ProviderInfo

router = APIRouter(prefix="/providers", tags=["Providers"])

DEFAULT_MODELS = {
    LLMProviderType.ANTHROPIC: "claude-sonnet-4-20250514",
    LLMProviderType.OPENAI: "gpt-4o",
}


@router.get("")
async def list_providers() -> list[ProviderInfo]:
    """List model providers and whether each has credentials."""
    settings = get_settings()
    configured = {
        LLMProviderType.ANTHROPIC: bool(settings.api.anthropic_api_key.get_secret_value()),
        LLMProviderType.OPENAI: bool(
            settings.api.openai_api_key.get_secret_value() or settings.llm.base_url
        ),
    }

    providers = []
    for provider in LLMProviderType:
        current = provider.value == settings.llm.provider
        providers.append(
            ProviderInfo(
                id=provider.value,
                configured=configured[provider],
                default_model=settings.llm.model if current else DEFAULT_MODELS[provider],
                current=current,
            )
        )
    return providers
