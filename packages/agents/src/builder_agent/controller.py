"""
Iteration controller - the build loop.

Each iteration renders the conversation into one prompt, asks the model
for exactly one directive, executes it and feeds the outcome back as the
next user turn. The loop ends when the model says it is done, when the
iteration cap is hit, or when the subscriber goes away.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from forge_core import (
    ExecutionError,
    ForgeError,
    LLMResponse,
    LoopState,
    MessageRole,
    StopReason,
    agent_iterations_total,
    agent_runs_total,
    get_logger,
)
from forge_runtime import WorkspaceFile, WorkspaceManager

from .directives import AgentReply, Directive, describe, parse_reply
from .dispatcher import CommandDispatcher
from .events import Complete, ErrorEvent, IterationUpdate
from .gateway import EventGateway
from .prompts import SYSTEM_PROMPT, error_message, render_prompt, result_message
from .results import CommandResult, ExecutionResult, FileResult, ServerResult
from .sessions import ChatMessage, SessionStore

logger = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 20


class CompletionClient(Protocol):
    """Anything that turns a text prompt into a model reply."""

    async def complete(
        self,
        prompt: str,
        *,
        system: str = "",
        model: str | None = None,
    ) -> LLMResponse: ...


@dataclass
class IterationRecord:
    """What happened in one iteration."""

    iteration: int
    reasoning: str
    expectation: str
    directive: Directive
    result: ExecutionResult

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "reasoning": self.reasoning,
            "expectation": self.expectation,
            "command": describe(self.directive),
            "result": self.result.to_dict(),
        }


@dataclass
class FinalResult:
    """Outcome of a non-aborted run."""

    session_id: str
    project_id: str
    iterations: int
    stop_reason: StopReason
    history_length: int
    server_url: str | None = None
    files_touched: list[str] = field(default_factory=list)
    files: list[WorkspaceFile] = field(default_factory=list)
    records: list[IterationRecord] = field(default_factory=list)
    provider: str | None = None
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "projectId": self.project_id,
            "iterations": self.iterations,
            "stopReason": self.stop_reason.value,
            "serverUrl": self.server_url,
            "filesTouched": self.files_touched,
            "files": [f.to_dict() for f in self.files],
            "results": [r.to_dict() for r in self.records],
            "conversationLength": self.history_length,
            "provider": self.provider,
            "model": self.model,
        }


def feedback_for(result: ExecutionResult) -> str:
    """Synthetic user turn describing a dispatch outcome."""
    if result.success or isinstance(result, CommandResult):
        return result_message(result.feedback())
    return error_message(result.error or "unknown error")


class IterationController:
    """
    Drives the build loop.

    Runs on the same session are serialized by the session lock; runs on
    different sessions proceed concurrently.
    """

    def __init__(
        self,
        llm: CompletionClient,
        dispatcher: CommandDispatcher,
        sessions: SessionStore,
        workspace: WorkspaceManager,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self.llm = llm
        self.dispatcher = dispatcher
        self.sessions = sessions
        self.workspace = workspace
        self.max_iterations = max_iterations
        self.system_prompt = system_prompt

    async def run(
        self,
        session_id: str | None,
        user_input: str,
        gateway: EventGateway,
        model: str | None = None,
    ) -> FinalResult:
        """
        Run the loop until completion, the iteration cap, or disconnect.

        Args:
            session_id: Existing session to resume, or None for a new one
            user_input: The user's request for this run
            gateway: Event channel to the subscriber
            model: Optional per-request model override

        Returns:
            FinalResult describing the run

        Raises:
            InvalidSessionIdError: Session id cannot name a project
            ParseError: Model reply was not a usable directive
            ProviderError: Model request failed or timed out
        """
        session = self.sessions.get_or_create(session_id)
        project_id = session.id
        log = logger.bind(session_id=session.id, project_id=project_id)

        async with session.lock:
            messages = [
                ChatMessage(MessageRole.SYSTEM, self.system_prompt),
                *session.messages,
            ]
            if user_input:
                messages.append(ChatMessage(MessageRole.USER, user_input))

            iteration = 0
            records: list[IterationRecord] = []
            files_touched: list[str] = []
            server_url: str | None = None
            last_response: LLMResponse | None = None
            stop_reason = StopReason.ITERATION_CAP
            state = LoopState.BUILDING

            log.info("Build loop started", history=len(session.messages))

            try:
                while iteration < self.max_iterations:
                    if gateway.cancelled:
                        log.info("Subscriber gone, stopping", iteration=iteration)
                        stop_reason = StopReason.CANCELLED
                        break

                    iteration += 1
                    agent_iterations_total.inc()

                    state = LoopState.AWAITING_MODEL
                    last_response = await self.llm.complete(render_prompt(messages), model=model)
                    raw = last_response.text_content
                    messages.append(ChatMessage(MessageRole.ASSISTANT, raw))

                    reply = parse_reply(raw)
                    state = LoopState.HAVE_DIRECTIVE
                    gateway.emit(
                        IterationUpdate(
                            iteration=iteration,
                            reasoning=reply.reasoning,
                            expectation=reply.expectation,
                        )
                    )

                    state = LoopState.DISPATCHING
                    result = await self.dispatcher.execute(reply.directive, project_id, gateway)
                    messages.append(ChatMessage(MessageRole.USER, feedback_for(result)))

                    records.append(self._record(iteration, reply, result))
                    if isinstance(result, FileResult) and result.success and result.path not in files_touched:
                        files_touched.append(result.path)
                    if isinstance(result, ServerResult) and result.success:
                        server_url = result.url
                    state = LoopState.RECORDED

                    log.info(
                        "Iteration recorded",
                        iteration=iteration,
                        directive=describe(reply.directive),
                        success=result.success,
                    )

                    if reply.should_stop:
                        stop_reason = StopReason.COMPLETED
                        break
                else:
                    log.warning("Iteration cap reached", max_iterations=self.max_iterations)

            except ForgeError as e:
                state = LoopState.ABORTED
                agent_runs_total.labels(status="aborted").inc()
                log.error(
                    "Build loop aborted",
                    iteration=iteration,
                    state=state.value,
                    error=e.message,
                    error_code=e.error_code,
                )
                raise

            try:
                files = await self.workspace.list_files(project_id)
            except ExecutionError as e:
                log.warning("Could not list project files", error=e.message)
                files = []

            state = LoopState.COMPLETED
            committed = self.sessions.commit(session.id, messages)

        agent_runs_total.labels(status=stop_reason.value).inc()
        log.info("Build loop finished", iterations=iteration, stop_reason=stop_reason.value)

        return FinalResult(
            session_id=session.id,
            project_id=project_id,
            iterations=iteration,
            stop_reason=stop_reason,
            history_length=len(committed.messages),
            server_url=server_url,
            files_touched=files_touched,
            files=files,
            records=records,
            provider=last_response.provider.value if last_response else None,
            model=last_response.model if last_response else model,
        )

    async def stream(
        self,
        session_id: str | None,
        user_input: str,
        gateway: EventGateway,
        model: str | None = None,
    ) -> FinalResult | None:
        """
        Run the loop and finish the stream with one terminal event.

        Returns:
            FinalResult, or None if the run aborted
        """
        try:
            result = await self.run(session_id, user_input, gateway, model=model)
        except ForgeError as e:
            gateway.emit(ErrorEvent(error=e.message, code=e.error_code))
            return None
        except Exception as e:
            logger.exception("Unexpected error in build loop", error=str(e))
            gateway.emit(ErrorEvent(error="Internal error", code="INTERNAL_ERROR"))
            return None

        gateway.emit(Complete(result=result.to_dict()))
        return result

    @staticmethod
    def _record(iteration: int, reply: AgentReply, result: ExecutionResult) -> IterationRecord:
        return IterationRecord(
            iteration=iteration,
            reasoning=reply.reasoning,
            expectation=reply.expectation,
            directive=reply.directive,
            result=result,
        )
