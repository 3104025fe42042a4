"""
Execution results, one variant per directive kind.

Each result knows how to describe itself back to the model so the next
turn can react to failures.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from forge_core import DirectiveType
from forge_runtime import ServerHandle


@dataclass
class ExecutionResult(ABC):
    """Common fields of every execution result."""

    success: bool
    error: str | None = None

    kind: ClassVar[DirectiveType]

    @abstractmethod
    def feedback(self) -> str:
        """Text appended to the conversation after dispatch."""

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "success": self.success, "error": self.error}


@dataclass
class CommandResult(ExecutionResult):
    command: str = ""
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    timed_out: bool = False

    kind = DirectiveType.COMMAND

    @property
    def output(self) -> str:
        return self.stdout or self.stderr or self.error or ""

    def feedback(self) -> str:
        return (
            f'Command "{self.command}" executed. Success: {str(self.success).lower()}. '
            f"Output: {self.output or 'No output'}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "command": self.command,
            "output": self.output,
            "exit_code": self.exit_code,
            "timed_out": self.timed_out,
        }


@dataclass
class FileResult(ExecutionResult):
    path: str = ""
    bytes_written: int = 0

    kind = DirectiveType.FILE

    def feedback(self) -> str:
        if self.success:
            return f'File "{self.path}" created successfully ({self.bytes_written} bytes).'
        return f'File "{self.path}" was not written. Error: {self.error}'

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "path": self.path, "size": self.bytes_written}


@dataclass
class MessageResult(ExecutionResult):
    text: str = ""
    data: dict[str, Any] = field(default_factory=dict)

    kind = DirectiveType.MESSAGE

    def feedback(self) -> str:
        return f"Message sent: {self.text}"

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "message": self.data}


@dataclass
class ServerResult(ExecutionResult):
    command: str = ""
    handle: ServerHandle | None = None
    output: str = ""

    kind = DirectiveType.SERVER

    @property
    def url(self) -> str | None:
        return self.handle.url if self.handle else None

    def feedback(self) -> str:
        if self.success and self.handle:
            return (
                f"Server started successfully at {self.handle.url}. "
                "You can now test your application by visiting this URL."
            )
        return f"Failed to start server: {self.error}"

    def to_dict(self) -> dict[str, Any]:
        data = {**super().to_dict(), "command": self.command}
        if self.handle:
            data["server"] = self.handle.to_dict()
        return data
