"""
Session routes.
"""

from typing import Any

from fastapi import APIRouter

from ..dependencies import SessionStoreDep

router = APIRouter(prefix="/sessions", tags=["Sessions"])


@router.get("")
async def list_sessions(sessions: SessionStoreDep) -> list[dict[str, Any]]:
    """List known sessions, most recently updated first."""
    return [s.to_dict() for s in sessions.list_sessions()]


@router.get("/{session_id}")
async def get_session(session_id: str, sessions: SessionStoreDep) -> dict[str, Any]:
    """Get one session with its committed history."""
    return sessions.get(session_id).to_dict(include_messages=True)
