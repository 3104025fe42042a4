"""
In-memory conversation sessions.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from forge_core import (
    InvalidSessionIdError,
    MessageRole,
    SessionNotFoundError,
    get_logger,
)
from forge_runtime import is_valid_project_id

logger = get_logger(__name__)


@dataclass
class ChatMessage:
    """One conversation turn."""

    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class Session:
    """Conversation history for one project."""

    id: str
    messages: list[ChatMessage] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def to_dict(self, include_messages: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "message_count": len(self.messages),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "busy": self.lock.locked(),
        }
        if include_messages:
            data["messages"] = [m.to_dict() for m in self.messages]
        return data


class SessionStore:
    """
    Process-wide session map.

    Sessions live for the lifetime of the process. Runs against the same
    session serialize on ``Session.lock``; the store itself only guards
    the map.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def get_or_create(self, session_id: str | None = None) -> Session:
        """
        Return the known session or start a new one.

        The session id doubles as the project directory name.

        Raises:
            InvalidSessionIdError: If the id cannot name a project
        """
        if session_id and session_id in self._sessions:
            return self._sessions[session_id]
        if session_id and not is_valid_project_id(session_id):
            raise InvalidSessionIdError(
                f"Invalid session id: {session_id!r}",
                context={"session_id": session_id},
            )

        session = Session(id=session_id or str(uuid.uuid4()))
        self._sessions[session.id] = session
        logger.info("Session created", session_id=session.id)
        return session

    def get(self, session_id: str) -> Session:
        """
        Look up a session.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(
                f"Session not found: {session_id}",
                context={"session_id": session_id},
            )

    def commit(self, session_id: str, messages: list[ChatMessage]) -> Session:
        """Replace a session's history with the given turns."""
        session = self.get_or_create(session_id)
        session.messages = [m for m in messages if m.role is not MessageRole.SYSTEM]
        session.updated_at = datetime.now(timezone.utc)
        logger.debug("Session committed", session_id=session_id, messages=len(session.messages))
        return session

    def list_sessions(self) -> list[Session]:
        return sorted(self._sessions.values(), key=lambda s: s.updated_at, reverse=True)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
