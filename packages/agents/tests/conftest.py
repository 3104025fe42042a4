"""Shared fixtures for builder agent tests."""

import json

import pytest

from builder_agent import CommandDispatcher, EventGateway, IterationController, SessionStore
from forge_core import LLMResponse, ServerStartError, ServerStatus
from forge_runtime import ServerHandle, WorkspaceManager


def reply(command: dict, *, continue_after: bool = True, complete: bool = False, **extra) -> str:
    """Render a model reply the way a well-behaved model would."""
    payload = {
        "nextCommand": command,
        "reasoning": extra.pop("reasoning", "next step"),
        "expectation": extra.pop("expectation", "it works"),
        "continueAfter": continue_after,
        "isComplete": complete,
        **extra,
    }
    return json.dumps(payload)


class ScriptedLLM:
    """Completion client replaying canned replies; the last one repeats."""

    def __init__(self, replies, error: Exception | None = None):
        self.replies = list(replies)
        self.error = error
        self.prompts: list[str] = []
        self.models: list[str | None] = []

    async def complete(self, prompt, *, system="", model=None):
        self.prompts.append(prompt)
        self.models.append(model)
        if self.error is not None:
            raise self.error
        text = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        return LLMResponse(text_content=text, model=model or "scripted")


class FakeSupervisor:
    """Supervisor stand-in that records start calls."""

    def __init__(self, error: ServerStartError | None = None):
        self.error = error
        self.starts: list[dict] = []
        self.next_port = 24000

    async def start(self, project_id, command, port=None, host="localhost"):
        self.starts.append({"project_id": project_id, "command": command, "port": port, "host": host})
        if self.error is not None:
            raise self.error
        handle = ServerHandle(
            project_id=project_id,
            command=command,
            launched_command=f"{command} -p {port or self.next_port}",
            port=port or self.next_port,
            host=host,
            status=ServerStatus.RUNNING,
        )
        self.next_port += 1
        return handle


@pytest.fixture
def workspace(tmp_path):
    """Create a workspace rooted in a temp directory."""
    manager = WorkspaceManager(tmp_path / "ws")
    manager.ensure_root()
    return manager


@pytest.fixture
def supervisor():
    return FakeSupervisor()


@pytest.fixture
def dispatcher(workspace, supervisor):
    return CommandDispatcher(workspace, supervisor, shell_timeout=5.0)


@pytest.fixture
def sessions():
    return SessionStore()


@pytest.fixture
def gateway():
    return EventGateway(heartbeat_interval=60.0)


@pytest.fixture
def make_controller(dispatcher, sessions, workspace):
    """Build a controller around a scripted model."""

    def factory(llm, **kwargs) -> IterationController:
        return IterationController(llm, dispatcher, sessions, workspace, **kwargs)

    return factory


def drain(gateway: EventGateway) -> list[dict]:
    """Pull every queued event off a gateway without blocking."""
    events = []
    while not gateway._queue.empty():
        event = gateway._queue.get_nowait()
        if event is not None:
            events.append(event.to_wire())
    return events


@pytest.fixture
def make_reply():
    return reply


@pytest.fixture
def scripted_llm():
    return ScriptedLLM


@pytest.fixture
def drain_events():
    return drain
