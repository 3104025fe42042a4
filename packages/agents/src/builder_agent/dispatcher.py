"""
Directive dispatch against the project workspace.
"""

from typing import assert_never

from forge_core import (
    ExecutionError,
    directives_total,
    get_logger,
)
from forge_runtime import ProcessSupervisor, WorkspaceManager, run_shell
from forge_runtime.shell import DEFAULT_MAX_OUTPUT, DEFAULT_TIMEOUT

from .directives import (
    DEFAULT_HOST,
    Directive,
    FileWrite,
    Message,
    ServerStart,
    ShellCommand,
    describe,
)
from .events import AIMessage, CommandExecuted, FileCreated, ServerStarted
from .gateway import EventGateway
from .results import (
    CommandResult,
    ExecutionResult,
    FileResult,
    MessageResult,
    ServerResult,
)

logger = get_logger(__name__)


class CommandDispatcher:
    """
    Executes one directive and reports it on the event gateway.

    Execution failures never escape: they come back as a failed result so
    the loop can feed them to the model.
    """

    def __init__(
        self,
        workspace: WorkspaceManager,
        supervisor: ProcessSupervisor,
        shell_timeout: float = DEFAULT_TIMEOUT,
        max_output: int = DEFAULT_MAX_OUTPUT,
    ):
        self.workspace = workspace
        self.supervisor = supervisor
        self.shell_timeout = shell_timeout
        self.max_output = max_output

    async def execute(
        self,
        directive: Directive,
        project_id: str,
        gateway: EventGateway,
    ) -> ExecutionResult:
        """
        Execute a directive for a project.

        Args:
            directive: Parsed directive
            project_id: Workspace the directive runs against
            gateway: Event channel for progress events

        Returns:
            Result variant matching the directive
        """
        logger.info("Dispatching directive", project_id=project_id, directive=describe(directive))

        match directive:
            case ShellCommand():
                result = await self._run_command(directive, project_id, gateway)
            case FileWrite():
                result = await self._write_file(directive, project_id, gateway)
            case Message():
                result = self._send_message(directive, gateway)
            case ServerStart():
                result = await self._start_server(directive, project_id, gateway)
            case _:
                assert_never(directive)

        directives_total.labels(
            type=directive.kind.value,
            status="success" if result.success else "failure",
        ).inc()
        return result

    async def _run_command(
        self,
        directive: ShellCommand,
        project_id: str,
        gateway: EventGateway,
    ) -> CommandResult:
        try:
            cwd = self.workspace.project_dir(project_id)
            shell = await run_shell(
                directive.cmd,
                cwd,
                timeout=self.shell_timeout,
                max_output=self.max_output,
            )
        except ExecutionError as e:
            logger.warning("Command could not be run", cmd=directive.cmd, error=e.message)
            result = CommandResult(success=False, error=e.message, command=directive.cmd)
        else:
            result = CommandResult(
                success=shell.success,
                error=shell.error,
                command=directive.cmd,
                stdout=shell.stdout,
                stderr=shell.stderr,
                exit_code=shell.returncode,
                timed_out=shell.timed_out,
            )

        gateway.emit(
            CommandExecuted(command=directive.cmd, success=result.success, output=result.output)
        )
        return result

    async def _write_file(
        self,
        directive: FileWrite,
        project_id: str,
        gateway: EventGateway,
    ) -> FileResult:
        try:
            written = await self.workspace.write_file(project_id, directive.path, directive.content)
        except ExecutionError as e:
            logger.warning("File write rejected", path=directive.path, error=e.message)
            gateway.emit(
                CommandExecuted(
                    command=f"write {directive.path}",
                    success=False,
                    output=e.message,
                )
            )
            return FileResult(success=False, error=e.message, path=directive.path)

        gateway.emit(FileCreated(filename=directive.path, size=written))
        return FileResult(success=True, path=directive.path, bytes_written=written)

    def _send_message(self, directive: Message, gateway: EventGateway) -> MessageResult:
        event = AIMessage(
            content=directive.text,
            messageType=directive.severity,
            title=directive.title,
        )
        gateway.emit(event)
        return MessageResult(success=True, text=directive.text, data=event.to_wire())

    async def _start_server(
        self,
        directive: ServerStart,
        project_id: str,
        gateway: EventGateway,
    ) -> ServerResult:
        try:
            handle = await self.supervisor.start(
                project_id,
                directive.cmd,
                port=directive.port,
                host=directive.host or DEFAULT_HOST,
            )
        except ExecutionError as e:
            logger.warning("Server start failed", project_id=project_id, error=e.message)
            gateway.emit(
                ServerStarted(
                    command=directive.cmd,
                    port=directive.port,
                    success=False,
                    error=e.message,
                )
            )
            return ServerResult(
                success=False,
                error=e.message,
                command=directive.cmd,
                output=e.output,
            )

        gateway.emit(
            ServerStarted(
                url=handle.url,
                port=handle.port,
                host=handle.host,
                command=handle.launched_command,
            )
        )
        return ServerResult(
            success=True,
            command=handle.launched_command,
            handle=handle,
            output=handle.output,
        )
