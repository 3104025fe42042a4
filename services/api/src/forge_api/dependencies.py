"""
FastAPI dependencies for dependency injection.

The workspace, supervisor and session store are process-wide singletons;
a model client is built per request so callers can pick provider and model.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from builder_agent import CommandDispatcher, IterationController, SessionStore
from forge_core import LLMClient, get_logger, get_settings
from forge_runtime import PortAllocator, ProcessSupervisor, WorkspaceManager

from .config import APIConfig, get_api_config

logger = get_logger(__name__)


async def get_config() -> APIConfig:
    """Get API configuration."""
    return get_api_config()


@lru_cache
def get_workspace() -> WorkspaceManager:
    """Get the workspace manager."""
    settings = get_settings()
    return WorkspaceManager(settings.workspace.root)


@lru_cache
def get_supervisor() -> ProcessSupervisor:
    """Get the preview server supervisor."""
    engine = get_settings().engine
    return ProcessSupervisor(
        get_workspace(),
        PortAllocator(engine.port_range_start, engine.port_range_end),
        startup_timeout=engine.server_startup_timeout,
        stop_grace=engine.server_stop_grace,
    )


@lru_cache
def get_session_store() -> SessionStore:
    """Get the in-memory session store."""
    return SessionStore()


@lru_cache
def get_dispatcher() -> CommandDispatcher:
    """Get the directive dispatcher."""
    engine = get_settings().engine
    return CommandDispatcher(
        get_workspace(),
        get_supervisor(),
        shell_timeout=engine.shell_timeout,
        max_output=engine.shell_max_output,
    )


def build_controller(provider: str | None = None, model: str | None = None) -> IterationController:
    """
    Build an iteration controller for one request.

    Raises:
        ProviderNotConfiguredError: If the provider has no credentials
    """
    settings = get_settings()
    client = LLMClient.from_settings(provider=provider, model=model, settings=settings)
    logger.debug("Model client ready", provider=client.provider_type.value, model=client.model)
    return IterationController(
        client,
        get_dispatcher(),
        get_session_store(),
        get_workspace(),
        max_iterations=settings.engine.max_iterations,
    )


WorkspaceDep = Annotated[WorkspaceManager, Depends(get_workspace)]
SupervisorDep = Annotated[ProcessSupervisor, Depends(get_supervisor)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
