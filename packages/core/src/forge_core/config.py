"""
Configuration management using Pydantic Settings.

Provides type-safe configuration loading from environment variables
and an optional .env file.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMSettings(BaseSettings):
    """Model provider configuration."""

    model_config = SettingsConfigDict(env_prefix="LLM_")

    provider: Literal["anthropic", "openai"] = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    # OpenAI-compatible endpoints (Moonshot, Ollama, ...) are reached through base_url
    base_url: str | None = None
    max_tokens: int = 2000
    temperature: float = 0.7
    request_timeout: float = 300.0  # Seconds to wait for one completion
    max_retries: int = 3
    retry_base_delay: float = 2.0
    retry_max_delay: float = 30.0


class APISettings(BaseSettings):
    """External API credentials."""

    model_config = SettingsConfigDict(env_prefix="")

    anthropic_api_key: SecretStr = Field(default=SecretStr(""), alias="ANTHROPIC_API_KEY")
    openai_api_key: SecretStr = Field(default=SecretStr(""), alias="OPENAI_API_KEY")


class WorkspaceSettings(BaseSettings):
    """Project workspace configuration."""

    model_config = SettingsConfigDict(env_prefix="WORKSPACE_")

    root: str = "ai-workspace"


class EngineSettings(BaseSettings):
    """Iteration engine limits."""

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    max_iterations: int = 20
    shell_timeout: float = 30.0
    shell_max_output: int = 1024 * 1024  # Bytes captured per stream
    server_startup_timeout: float = 30.0
    server_stop_grace: float = 5.0
    port_range_start: int = 24000
    port_range_end: int = 24999
    heartbeat_interval: float = 30.0


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    service_name: str = "iterforge"

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    api: APISettings = Field(default_factory=APISettings)
    workspace: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance (cached after first call)
    """
    return Settings()


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).

    Returns:
        Fresh Settings instance
    """
    get_settings.cache_clear()
    return get_settings()
