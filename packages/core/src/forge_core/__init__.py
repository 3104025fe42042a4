"""
Forge Core Package - Shared foundation for iterforge.

Provides:
- Settings (pydantic-settings)
- Structured logging (structlog)
- Exception hierarchy
- Prometheus metrics
- LLM client and providers
"""

from .config import (
    EngineSettings,
    LLMSettings,
    Settings,
    WorkspaceSettings,
    get_settings,
    reload_settings,
)
from .enums import (
    DirectiveType,
    EventType,
    LoopState,
    MessageRole,
    MessageSeverity,
    ServerStatus,
    StopReason,
)
from .exceptions import (
    ConfigurationError,
    ContractError,
    ExecutionError,
    ForgeError,
    InvalidSessionIdError,
    ParseError,
    PathEscapeError,
    PortExhaustedError,
    PortUnavailableError,
    ProcessExitError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderTimeoutError,
    ServerNotFoundError,
    ServerStartError,
    SessionNotFoundError,
    ShellExecutionError,
    StartupTimeoutError,
    WorkspaceError,
)
from .llm_client import LLMClient, create_provider
from .llm_provider import BaseLLMProvider, LLMProviderType, LLMResponse
from .logging import (
    configure_logging,
    get_logger,
    set_correlation_id,
)
from .metrics import (
    agent_iterations_total,
    agent_runs_total,
    directives_total,
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
    preview_server_starts_total,
    preview_servers_running,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Config
    "EngineSettings",
    "LLMSettings",
    "Settings",
    "WorkspaceSettings",
    "get_settings",
    "reload_settings",
    # Enums
    "DirectiveType",
    "EventType",
    "LoopState",
    "MessageRole",
    "MessageSeverity",
    "ServerStatus",
    "StopReason",
    # Exceptions
    "ConfigurationError",
    "ContractError",
    "ExecutionError",
    "ForgeError",
    "InvalidSessionIdError",
    "ParseError",
    "PathEscapeError",
    "PortExhaustedError",
    "PortUnavailableError",
    "ProcessExitError",
    "ProviderError",
    "ProviderNotConfiguredError",
    "ProviderTimeoutError",
    "ServerNotFoundError",
    "ServerStartError",
    "SessionNotFoundError",
    "ShellExecutionError",
    "StartupTimeoutError",
    "WorkspaceError",
    # LLM
    "BaseLLMProvider",
    "LLMClient",
    "LLMProviderType",
    "LLMResponse",
    "create_provider",
    # Logging
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    # Metrics
    "agent_iterations_total",
    "agent_runs_total",
    "directives_total",
    "http_request_duration_seconds",
    "http_requests_in_progress",
    "http_requests_total",
    "preview_server_starts_total",
    "preview_servers_running",
]
