"""Tests for the iteration controller."""

import pytest

from builder_agent import SYSTEM_PROMPT
from forge_core import (
    InvalidSessionIdError,
    MessageRole,
    ParseError,
    ProviderTimeoutError,
    StartupTimeoutError,
    StopReason,
    WorkspaceError,
)

MESSAGE = {"type": "message", "message": "Building a clock"}
INDEX = {"type": "file", "path": "index.html", "content": "<h1>clock</h1>"}
SERVER = {"type": "server", "cmd": "npx serve ."}


@pytest.mark.asyncio
class TestIterationController:
    """Tests for IterationController.run."""

    async def test_runs_until_complete(self, make_controller, scripted_llm, make_reply, gateway, sessions):
        llm = scripted_llm([
            make_reply(MESSAGE),
            make_reply(INDEX),
            make_reply(SERVER, complete=True),
        ])
        controller = make_controller(llm)

        result = await controller.run("proj", "build a clock", gateway)

        assert result.stop_reason == StopReason.COMPLETED
        assert result.iterations == 3
        assert result.session_id == "proj"
        assert result.project_id == "proj"
        assert result.files_touched == ["index.html"]
        assert result.server_url == "http://localhost:24000"
        assert [f.path for f in result.files] == ["index.html"]
        assert [r.iteration for r in result.records] == [1, 2, 3]
        # user input + three (assistant, result) pairs
        assert result.history_length == 7
        assert len(sessions.get("proj").messages) == 7

    async def test_prompt_rendering(self, make_controller, scripted_llm, make_reply, gateway):
        llm = scripted_llm([make_reply(MESSAGE, continue_after=False)])
        controller = make_controller(llm)

        await controller.run("proj", "build a clock", gateway)

        prompt = llm.prompts[0]
        assert prompt.startswith(f"system: {SYSTEM_PROMPT}\n\nuser: build a clock")
        assert prompt.endswith("\n\nPlease respond with the next command to execute in JSON format.")

    async def test_results_are_fed_back(self, make_controller, scripted_llm, make_reply, gateway):
        llm = scripted_llm([make_reply(INDEX), make_reply(MESSAGE, complete=True)])
        controller = make_controller(llm)

        await controller.run("proj", "build", gateway)

        second = llm.prompts[1]
        assert "assistant: " in second
        assert 'user: COMMAND RESULT: File "index.html" created successfully' in second

    async def test_stops_when_continue_after_false(self, make_controller, scripted_llm, make_reply, gateway):
        llm = scripted_llm([make_reply(MESSAGE, continue_after=False), make_reply(MESSAGE)])
        controller = make_controller(llm)

        result = await controller.run("proj", "hi", gateway)

        assert result.iterations == 1
        assert result.stop_reason == StopReason.COMPLETED

    async def test_iteration_cap(self, make_controller, scripted_llm, make_reply, gateway):
        llm = scripted_llm([make_reply(MESSAGE)])
        controller = make_controller(llm)

        result = await controller.run("proj", "never finish", gateway)

        assert result.iterations == 20
        assert result.stop_reason == StopReason.ITERATION_CAP
        assert len(llm.prompts) == 20

    async def test_configurable_cap(self, make_controller, scripted_llm, make_reply, gateway):
        llm = scripted_llm([make_reply(MESSAGE)])
        controller = make_controller(llm, max_iterations=3)

        result = await controller.run("proj", "never finish", gateway)

        assert result.iterations == 3
        assert result.stop_reason == StopReason.ITERATION_CAP

    async def test_execution_error_folded_into_context(
        self, make_controller, scripted_llm, make_reply, gateway, drain_events
    ):
        escape = {"type": "file", "path": "../../evil.txt", "content": "x"}
        llm = scripted_llm([make_reply(escape), make_reply(MESSAGE, complete=True)])
        controller = make_controller(llm)

        result = await controller.run("proj", "build", gateway)

        assert result.iterations == 2
        assert not result.records[0].result.success
        assert "COMMAND RESULT: ERROR - Path escapes workspace" in llm.prompts[1]
        assert "Please analyze the error and try a different approach." in llm.prompts[1]
        types = [e["type"] for e in drain_events(gateway)]
        assert types == ["iteration_update", "command_executed", "iteration_update", "ai_message"]

    async def test_server_timeout_folded_into_context(
        self, make_controller, scripted_llm, make_reply, gateway, supervisor
    ):
        supervisor.error = StartupTimeoutError(30, "still compiling")
        llm = scripted_llm([
            make_reply({"type": "server", "cmd": "serve .", "port": 24005}),
            make_reply(MESSAGE, complete=True),
        ])
        controller = make_controller(llm)

        result = await controller.run("proj", "build", gateway)

        assert result.stop_reason == StopReason.COMPLETED
        assert result.server_url is None
        assert "Server startup timeout after 30s. Output: still compiling" in llm.prompts[1]

    async def test_parse_error_aborts(self, make_controller, scripted_llm, make_reply, gateway, sessions):
        llm = scripted_llm([make_reply(MESSAGE), "I am not JSON"])
        controller = make_controller(llm)

        with pytest.raises(ParseError):
            await controller.run("proj", "build", gateway)

        assert sessions.get("proj").messages == []

    async def test_provider_error_aborts(self, make_controller, scripted_llm, gateway):
        llm = scripted_llm([""], error=ProviderTimeoutError("slow"))
        controller = make_controller(llm)

        with pytest.raises(ProviderTimeoutError):
            await controller.run("proj", "build", gateway)

    async def test_disconnect_stops_at_iteration_boundary(
        self, make_controller, scripted_llm, make_reply, gateway
    ):
        llm = scripted_llm([make_reply(MESSAGE)])
        complete = llm.complete

        async def disconnect_after_first(prompt, **kwargs):
            response = await complete(prompt, **kwargs)
            gateway.disconnect()
            return response

        llm.complete = disconnect_after_first
        controller = make_controller(llm)

        result = await controller.run("proj", "build", gateway)

        assert result.stop_reason == StopReason.CANCELLED
        assert result.iterations == 1
        # the in-flight directive still ran
        assert len(result.records) == 1

    async def test_session_resume(self, make_controller, scripted_llm, make_reply, gateway, sessions):
        llm = scripted_llm([make_reply(MESSAGE, continue_after=False)])
        controller = make_controller(llm)

        first = await controller.run(None, "build a clock", gateway)
        await controller.run(first.session_id, "make it blue", gateway)

        resumed = llm.prompts[1]
        assert resumed.count("system: ") == 1
        assert resumed.index("user: build a clock") < resumed.index("user: make it blue")
        history = sessions.get(first.session_id).messages
        assert len(history) == 6
        assert all(m.role != MessageRole.SYSTEM for m in history)

    async def test_invalid_session_id_rejected_before_any_work(
        self, make_controller, scripted_llm, make_reply, gateway, sessions, workspace
    ):
        llm = scripted_llm([make_reply(INDEX, complete=True)])
        controller = make_controller(llm)

        with pytest.raises(InvalidSessionIdError):
            await controller.run("my session", "build", gateway)

        assert llm.prompts == []
        assert "my session" not in sessions
        assert not (workspace.root / "my session").exists()

    async def test_file_listing_failure_does_not_fail_the_run(
        self, make_controller, scripted_llm, make_reply, gateway, workspace, monkeypatch
    ):
        async def broken_listing(project_id):
            raise WorkspaceError("listing failed")

        monkeypatch.setattr(workspace, "list_files", broken_listing)
        llm = scripted_llm([make_reply(INDEX, complete=True)])
        controller = make_controller(llm)

        result = await controller.run("proj", "build", gateway)

        assert result.stop_reason == StopReason.COMPLETED
        assert result.files == []
        assert result.files_touched == ["index.html"]

    async def test_model_override_passed_through(self, make_controller, scripted_llm, make_reply, gateway):
        llm = scripted_llm([make_reply(MESSAGE, continue_after=False)])
        controller = make_controller(llm)

        result = await controller.run("proj", "hi", gateway, model="other-model")

        assert llm.models == ["other-model"]
        assert result.model == "other-model"


@pytest.mark.asyncio
class TestIterationControllerStream:
    """Tests for IterationController.stream terminal events."""

    async def test_complete_event(self, make_controller, scripted_llm, make_reply, gateway, drain_events):
        llm = scripted_llm([make_reply(INDEX, complete=True)])
        controller = make_controller(llm)

        await controller.stream("proj", "build", gateway)

        events = drain_events(gateway)
        assert [e["type"] for e in events] == ["iteration_update", "file_created", "complete"]
        result = events[-1]["result"]
        assert result["sessionId"] == "proj"
        assert result["stopReason"] == "completed"
        assert result["files"][0]["content"] == "<h1>clock</h1>"
        assert result["conversationLength"] == 3

    async def test_single_error_event_on_abort(self, make_controller, scripted_llm, gateway, drain_events):
        llm = scripted_llm(["no json at all"])
        controller = make_controller(llm)

        assert await controller.stream("proj", "build", gateway) is None

        events = drain_events(gateway)
        assert len(events) == 1
        assert events[0]["type"] == "error"
        assert events[0]["code"] == "PARSE_ERROR"
        assert "not a valid directive" in events[0]["error"]

    async def test_invalid_session_id_ends_stream_with_single_error(
        self, make_controller, scripted_llm, make_reply, gateway, drain_events
    ):
        llm = scripted_llm([make_reply(INDEX, complete=True)])
        controller = make_controller(llm)

        assert await controller.stream("my session", "build", gateway) is None

        events = drain_events(gateway)
        assert [e["type"] for e in events] == ["error"]
        assert events[0]["code"] == "INVALID_SESSION_ID"

    async def test_valid_session_id_ends_with_complete(
        self, make_controller, scripted_llm, make_reply, gateway, drain_events
    ):
        llm = scripted_llm([make_reply(INDEX, complete=True)])
        controller = make_controller(llm)

        await controller.stream("my-session_1.v2", "build", gateway)

        events = drain_events(gateway)
        assert events[-1]["type"] == "complete"
        assert events[-1]["result"]["projectId"] == "my-session_1.v2"
        assert all(e.get("success", True) for e in events)
