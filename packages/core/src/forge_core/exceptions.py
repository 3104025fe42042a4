"""
Custom exceptions for iterforge.

Errors are split by how the iteration loop treats them:
- ContractError: the model broke the directive contract, the run aborts
- ExecutionError: a directive failed in the environment, the loop continues
- ProviderError: the model could not be reached, the run aborts
"""

from typing import Any


class ForgeError(Exception):
    """Base exception for all iterforge errors."""

    error_code: str = "FORGE_ERROR"
    status_code: int = 500
    fatal: bool = True

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}
        self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "context": self.context,
        }


# Configuration Errors
class ConfigurationError(ForgeError):
    """Configuration-related errors."""
    error_code = "CONFIGURATION_ERROR"


# Directive contract errors
class ContractError(ForgeError):
    """Model output violates the directive contract."""
    error_code = "CONTRACT_ERROR"
    status_code = 502


class ParseError(ContractError):
    """Model output could not be decoded as a directive."""
    error_code = "PARSE_ERROR"

    def __init__(self, reason: str, *, raw: str | None = None, **kwargs: Any):
        context = kwargs.pop("context", None) or {}
        if raw is not None:
            context["raw_preview"] = raw[:500]
        super().__init__(f"AI response is not a valid directive: {reason}", context=context, **kwargs)
        self.reason = reason


# Execution errors (non-fatal for the loop)
class ExecutionError(ForgeError):
    """A directive failed while executing against the workspace."""
    error_code = "EXECUTION_ERROR"
    fatal = False

    def __init__(self, message: str, *, output: str = "", **kwargs: Any):
        super().__init__(message, **kwargs)
        self.output = output


class ShellExecutionError(ExecutionError):
    """Shell command could not be run."""
    error_code = "SHELL_EXECUTION_ERROR"


class WorkspaceError(ExecutionError):
    """Workspace operation failed."""
    error_code = "WORKSPACE_ERROR"
    status_code = 400


class PathEscapeError(WorkspaceError):
    """Path resolves outside the project workspace."""
    error_code = "PATH_ESCAPE"


class ServerStartError(ExecutionError):
    """Preview server could not be started."""
    error_code = "SERVER_START_ERROR"


class StartupTimeoutError(ServerStartError):
    """Preview server produced no readiness signal in time."""
    error_code = "SERVER_STARTUP_TIMEOUT"

    def __init__(self, timeout: float, output: str, **kwargs: Any):
        super().__init__(
            f"Server startup timeout after {timeout:g}s. Output: {output}",
            output=output,
            **kwargs,
        )
        self.timeout = timeout


class ProcessExitError(ServerStartError):
    """Preview server exited before becoming ready."""
    error_code = "SERVER_PROCESS_EXIT"

    def __init__(self, exit_code: int | None, output: str, **kwargs: Any):
        super().__init__(
            f"Server exited with code {exit_code}. Output: {output}",
            output=output,
            **kwargs,
        )
        self.exit_code = exit_code


class PortUnavailableError(ServerStartError):
    """Requested port is already claimed by a live server."""
    error_code = "PORT_UNAVAILABLE"
    status_code = 409


class PortExhaustedError(ServerStartError):
    """No ports left in the preview range."""
    error_code = "PORT_EXHAUSTED"
    status_code = 503


# Provider errors
class ProviderError(ForgeError):
    """Talking to the model provider failed."""
    error_code = "PROVIDER_ERROR"
    status_code = 502


class ProviderTimeoutError(ProviderError):
    """Model provider did not answer in time."""
    error_code = "PROVIDER_TIMEOUT"
    status_code = 504


class ProviderNotConfiguredError(ProviderError):
    """Model provider has no credentials."""
    error_code = "PROVIDER_NOT_CONFIGURED"
    status_code = 503


# Lookup errors
class SessionNotFoundError(ForgeError):
    """Requested session does not exist."""
    error_code = "SESSION_NOT_FOUND"
    status_code = 404


class ServerNotFoundError(ForgeError):
    """No preview server registered for the project."""
    error_code = "SERVER_NOT_FOUND"
    status_code = 404


class InvalidSessionIdError(ForgeError):
    """Session id cannot be used as a project directory name."""
    error_code = "INVALID_SESSION_ID"
    status_code = 400
