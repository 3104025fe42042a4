"""
Builder Agent Package - The iterative build loop.

Provides:
- Directive model and parser
- Command dispatcher
- Iteration controller
- Event gateway and stream events
- In-memory session store
"""

from .controller import (
    DEFAULT_MAX_ITERATIONS,
    CompletionClient,
    FinalResult,
    IterationController,
    IterationRecord,
    feedback_for,
)
from .directives import (
    AgentReply,
    Directive,
    FileWrite,
    Message,
    ServerStart,
    ShellCommand,
    build_directive,
    describe,
    extract_directive,
    find_json_object,
    parse_reply,
)
from .dispatcher import CommandDispatcher
from .events import (
    AIMessage,
    CommandExecuted,
    Complete,
    ErrorEvent,
    FileCreated,
    Heartbeat,
    IterationUpdate,
    ServerStarted,
    StreamEvent,
)
from .gateway import EventGateway
from .prompts import SYSTEM_PROMPT, render_prompt
from .results import (
    CommandResult,
    ExecutionResult,
    FileResult,
    MessageResult,
    ServerResult,
)
from .sessions import ChatMessage, Session, SessionStore

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Controller
    "DEFAULT_MAX_ITERATIONS",
    "CompletionClient",
    "FinalResult",
    "IterationController",
    "IterationRecord",
    "feedback_for",
    # Directives
    "AgentReply",
    "Directive",
    "FileWrite",
    "Message",
    "ServerStart",
    "ShellCommand",
    "build_directive",
    "describe",
    "extract_directive",
    "find_json_object",
    "parse_reply",
    # Dispatch
    "CommandDispatcher",
    "CommandResult",
    "ExecutionResult",
    "FileResult",
    "MessageResult",
    "ServerResult",
    # Events
    "AIMessage",
    "CommandExecuted",
    "Complete",
    "ErrorEvent",
    "EventGateway",
    "FileCreated",
    "Heartbeat",
    "IterationUpdate",
    "ServerStarted",
    "StreamEvent",
    # Prompts
    "SYSTEM_PROMPT",
    "render_prompt",
    # Sessions
    "ChatMessage",
    "Session",
    "SessionStore",
]
