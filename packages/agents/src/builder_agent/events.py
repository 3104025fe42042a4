"""
Event stream message schemas.

Field names follow the wire format consumed by the chat client, which is
why some of them are camelCase.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from forge_core import EventType, MessageSeverity


class StreamEvent(BaseModel):
    """Base event with the discriminating ``type`` field."""

    type: EventType

    @property
    def is_terminal(self) -> bool:
        return self.type in (EventType.COMPLETE, EventType.ERROR)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class IterationUpdate(StreamEvent):
    type: Literal[EventType.ITERATION_UPDATE] = EventType.ITERATION_UPDATE
    iteration: int
    reasoning: str = ""
    expectation: str = ""


class CommandExecuted(StreamEvent):
    type: Literal[EventType.COMMAND_EXECUTED] = EventType.COMMAND_EXECUTED
    command: str
    success: bool
    output: str = ""


class FileCreated(StreamEvent):
    type: Literal[EventType.FILE_CREATED] = EventType.FILE_CREATED
    filename: str
    size: int


class ServerStarted(StreamEvent):
    type: Literal[EventType.SERVER_STARTED] = EventType.SERVER_STARTED
    url: str | None = None
    port: int | None = None
    host: str | None = None
    command: str
    success: bool = True
    error: str | None = None


class AIMessage(StreamEvent):
    type: Literal[EventType.AI_MESSAGE] = EventType.AI_MESSAGE
    content: str
    messageType: MessageSeverity = MessageSeverity.INFO
    title: str = "Update"
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class Heartbeat(StreamEvent):
    type: Literal[EventType.HEARTBEAT] = EventType.HEARTBEAT


class Complete(StreamEvent):
    type: Literal[EventType.COMPLETE] = EventType.COMPLETE
    result: dict[str, Any]


class ErrorEvent(StreamEvent):
    type: Literal[EventType.ERROR] = EventType.ERROR
    error: str
    code: str | None = None
