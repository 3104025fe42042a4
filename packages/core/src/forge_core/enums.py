"""
Shared enumerations for iterforge.

These enums are used across multiple packages to ensure consistency.
"""

from enum import Enum


class DirectiveType(str, Enum):
    """Kinds of directive the model may issue (wire values)."""
    COMMAND = "command"
    FILE = "file"
    MESSAGE = "message"
    SERVER = "server"


class MessageRole(str, Enum):
    """Conversation message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class MessageSeverity(str, Enum):
    """Severity of a status message shown to the user."""
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class ServerStatus(str, Enum):
    """Preview server lifecycle status."""
    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


class LoopState(str, Enum):
    """Iteration controller states."""
    BUILDING = "building"
    AWAITING_MODEL = "awaiting_model"
    HAVE_DIRECTIVE = "have_directive"
    DISPATCHING = "dispatching"
    RECORDED = "recorded"
    COMPLETED = "completed"
    ABORTED = "aborted"


class StopReason(str, Enum):
    """Why a non-aborted run ended."""
    COMPLETED = "completed"
    ITERATION_CAP = "iteration_cap"
    CANCELLED = "cancelled"


class EventType(str, Enum):
    """Event stream message types."""
    ITERATION_UPDATE = "iteration_update"
    COMMAND_EXECUTED = "command_executed"
    FILE_CREATED = "file_created"
    SERVER_STARTED = "server_started"
    AI_MESSAGE = "ai_message"
    HEARTBEAT = "heartbeat"
    COMPLETE = "complete"
    ERROR = "error"
