"""
Preview server supervision.

Starts a shell command as a child process bound to a project workspace and
a port, waits for a readiness signal in its output, and stops it with a
graceful-then-forced escalation.

Each child runs in its own process group so that signals reach the whole
tree (``npx serve`` and friends spawn grandchildren).
"""

import asyncio
import os
import re
import signal
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from forge_core import (
    ProcessExitError,
    ServerStartError,
    ServerStatus,
    StartupTimeoutError,
    get_logger,
    preview_server_starts_total,
    preview_servers_running,
)

from .ports import PortAllocator
from .workspace import WorkspaceManager

logger = get_logger(__name__)

DEFAULT_STARTUP_TIMEOUT = 30.0
DEFAULT_STOP_GRACE = 5.0
MAX_CAPTURED_OUTPUT = 1024 * 1024

# Output fragments accepted as proof the server is serving
READY_MARKERS = ("Local:", "localhost", "Server running", "Development server")

# Suppresses automatic browser opening in common dev-server tooling
NO_BROWSER_ENV = {"BROWSER": "none", "OPEN": "false"}

_LONG_PORT_RE = re.compile(r"--port(?:=|\s+)\d+")
_SHORT_PORT_RE = re.compile(r"(?<!\S)-p\s+\d+")
_STATIC_SERVE_RE = re.compile(r"(?:^|\s|&&\s*)(?:npx\s+)?(?:serve|http-server)(?:\s|$)")
_HTTP_SERVER_RE = re.compile(r"python3?\s+-m\s+http\.server(?P<port>\s+\d+)?")
_NPM_RUN_RE = re.compile(r"\bnpm\s+run\s+(?:dev|start|preview)\b")
_PKG_RUN_RE = re.compile(r"\b(?:yarn|pnpm)\s+(?:run\s+)?(?:dev|start|preview)\b")
_VITE_RE = re.compile(r"\bvite\b")


def rewrite_command(command: str, port: int) -> str:
    """
    Bind a server command to ``port``.

    An existing ``--port``/``-p`` flag is rewritten in place. Otherwise a
    port flag is appended for tools known to accept one; anything else is
    left to honour the ``PORT`` environment variable.
    """
    if _LONG_PORT_RE.search(command):
        rewritten = _LONG_PORT_RE.sub(f"--port {port}", command)
    elif _SHORT_PORT_RE.search(command):
        rewritten = _SHORT_PORT_RE.sub(f"-p {port}", command)
    elif match := _HTTP_SERVER_RE.search(command):
        if match.group("port"):
            rewritten = command[:match.start("port")] + f" {port}" + command[match.end("port"):]
        else:
            rewritten = command[:match.end()] + f" {port}" + command[match.end():]
    elif _STATIC_SERVE_RE.search(command):
        rewritten = f"{command} -p {port}"
    elif _NPM_RUN_RE.search(command):
        separator = "" if " -- " in f"{command} " else " --"
        rewritten = f"{command}{separator} --port {port}"
    elif _PKG_RUN_RE.search(command) or _VITE_RE.search(command):
        rewritten = f"{command} --port {port}"
    else:
        rewritten = command

    if _VITE_RE.search(rewritten) and "--open" not in rewritten:
        rewritten = f"{rewritten} --open false"

    return rewritten


def is_ready(output: str, port: int) -> bool:
    """Readiness probe: the port number or a known marker appeared."""
    if str(port) in output:
        return True
    return any(marker in output for marker in READY_MARKERS)


@dataclass
class ServerHandle:
    """Supervisor-owned record of one preview server process."""

    project_id: str
    command: str
    launched_command: str
    port: int
    host: str = "localhost"
    status: ServerStatus = ServerStatus.STARTING
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    output: str = ""
    process: asyncio.subprocess.Process | None = field(default=None, repr=False)
    stopping: bool = field(default=False, repr=False)
    watcher: asyncio.Task | None = field(default=None, repr=False)

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process else None

    def append_output(self, text: str) -> None:
        self.output = (self.output + text)[-MAX_CAPTURED_OUTPUT:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "command": self.command,
            "port": self.port,
            "host": self.host,
            "url": self.url,
            "status": self.status.value,
            "pid": self.pid,
            "started_at": self.started_at.isoformat(),
        }


class ServerRegistry:
    """
    Running server handles keyed by project id.

    Holds at most one handle per project. Callers serialize mutations
    through the supervisor's lock.
    """

    def __init__(self) -> None:
        self._handles: dict[str, ServerHandle] = {}

    def register(self, handle: ServerHandle) -> None:
        existing = self._handles.get(handle.project_id)
        if existing is not None and existing is not handle:
            raise ServerStartError(
                f"Project {handle.project_id} already has a running server",
                context={"project_id": handle.project_id, "port": existing.port},
            )
        self._handles[handle.project_id] = handle

    def lookup(self, project_id: str) -> ServerHandle | None:
        return self._handles.get(project_id)

    def deregister(self, project_id: str, handle: ServerHandle | None = None) -> ServerHandle | None:
        """Remove the project's handle (only if it is ``handle``, when given)."""
        current = self._handles.get(project_id)
        if current is None or (handle is not None and current is not handle):
            return None
        return self._handles.pop(project_id)

    def all(self) -> list[ServerHandle]:
        return list(self._handles.values())

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._handles


def _signal_group(process: asyncio.subprocess.Process, sig: int) -> None:
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        pass


def _group_alive(pgid: int) -> bool:
    try:
        os.killpg(pgid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class ProcessSupervisor:
    """
    Starts, tracks and stops preview servers.

    Registry and port pool changes happen under one lock; a per-project
    lock keeps two starts (or a start and a stop) for the same project
    from interleaving.
    """

    def __init__(
        self,
        workspace: WorkspaceManager,
        ports: PortAllocator | None = None,
        *,
        startup_timeout: float = DEFAULT_STARTUP_TIMEOUT,
        stop_grace: float = DEFAULT_STOP_GRACE,
    ):
        self._workspace = workspace
        self._ports = ports or PortAllocator()
        self._registry = ServerRegistry()
        self._lock = asyncio.Lock()
        self._project_locks: dict[str, asyncio.Lock] = {}
        self.startup_timeout = startup_timeout
        self.stop_grace = stop_grace

    @property
    def registry(self) -> ServerRegistry:
        return self._registry

    @property
    def ports(self) -> PortAllocator:
        return self._ports

    def _project_lock(self, project_id: str) -> asyncio.Lock:
        return self._project_locks.setdefault(project_id, asyncio.Lock())

    def get(self, project_id: str) -> ServerHandle | None:
        """Get the running server for a project."""
        return self._registry.lookup(project_id)

    def list_servers(self) -> list[ServerHandle]:
        """All registered servers."""
        return self._registry.all()

    async def start(
        self,
        project_id: str,
        command: str,
        port: int | None = None,
        host: str = "localhost",
    ) -> ServerHandle:
        """
        Start a preview server for a project.

        An existing server for the project is stopped first.

        Raises:
            StartupTimeoutError: No readiness signal within the timeout
            ProcessExitError: Process exited before becoming ready
            ServerStartError: Port or spawn failure
        """
        async with self._project_lock(project_id):
            if self._registry.lookup(project_id) is not None:
                logger.info("Stopping existing server", project_id=project_id)
                await self._stop_locked(project_id)

            cwd = self._workspace.project_dir(project_id)

            async with self._lock:
                server_port = self._ports.claim(port) if port else self._ports.allocate()

            launched = rewrite_command(command, server_port)
            handle = ServerHandle(
                project_id=project_id,
                command=command,
                launched_command=launched,
                port=server_port,
                host=host,
            )
            logger.info(
                "Starting server",
                project_id=project_id,
                port=server_port,
                command=launched,
            )

            try:
                await self._launch(handle, cwd)
            except BaseException:
                handle.status = ServerStatus.FAILED
                async with self._lock:
                    self._ports.release(server_port)
                preview_server_starts_total.labels(status="failed").inc()
                raise

            async with self._lock:
                self._registry.register(handle)
                handle.status = ServerStatus.RUNNING
                preview_servers_running.set(len(self._registry))

            preview_server_starts_total.labels(status="success").inc()
            logger.info("Server started", project_id=project_id, url=handle.url, pid=handle.pid)
            return handle

    async def _launch(self, handle: ServerHandle, cwd: os.PathLike) -> None:
        """Spawn the process and wait for readiness, exit, or timeout."""
        env = {**os.environ, "PORT": str(handle.port), **NO_BROWSER_ENV}

        try:
            process = await asyncio.create_subprocess_shell(
                handle.launched_command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=str(cwd),
                env=env,
                start_new_session=True,
            )
        except OSError as e:
            raise ServerStartError(f"Failed to launch server: {e}", cause=e) from e

        handle.process = process
        ready: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
        handle.watcher = asyncio.create_task(self._watch(handle, ready))

        try:
            await asyncio.wait_for(asyncio.shield(ready), timeout=self.startup_timeout)
        except asyncio.TimeoutError:
            ready.cancel()
            logger.warning(
                "Server startup timed out",
                project_id=handle.project_id,
                timeout=self.startup_timeout,
            )
            await self._kill(handle)
            raise StartupTimeoutError(self.startup_timeout, handle.output)
        except asyncio.CancelledError:
            ready.cancel()
            await self._kill(handle)
            raise

        if process.returncode is not None:
            raise ProcessExitError(process.returncode, handle.output)

    async def _watch(self, handle: ServerHandle, ready: asyncio.Future) -> None:
        """Own the process output; resolve ``ready`` once, then keep draining."""
        process = handle.process
        assert process is not None and process.stdout is not None

        while True:
            chunk = await process.stdout.read(4096)
            if not chunk:
                break
            text = chunk.decode("utf-8", errors="replace")
            handle.append_output(text)
            logger.debug("Server output", project_id=handle.project_id, output=text.strip()[:500])
            if not ready.done() and is_ready(handle.output, handle.port):
                ready.set_result(True)

        returncode = await process.wait()

        if not ready.done():
            logger.warning(
                "Server exited before becoming ready",
                project_id=handle.project_id,
                returncode=returncode,
            )
            ready.set_exception(ProcessExitError(returncode, handle.output))
            return

        await self._on_exit(handle, returncode)

    async def _on_exit(self, handle: ServerHandle, returncode: int) -> None:
        """Deregister a running server that exited on its own."""
        async with self._lock:
            if handle.stopping or handle.status != ServerStatus.RUNNING:
                return
            handle.status = ServerStatus.FAILED if returncode else ServerStatus.STOPPED
            if self._registry.deregister(handle.project_id, handle) is not None:
                self._ports.release(handle.port)
            preview_servers_running.set(len(self._registry))

        logger.warning(
            "Server exited",
            project_id=handle.project_id,
            returncode=returncode,
            status=handle.status.value,
        )

    async def _kill(self, handle: ServerHandle) -> None:
        """Forcefully terminate a process group and reap it."""
        process = handle.process
        if process is None:
            return
        _signal_group(process, signal.SIGKILL)
        await process.wait()

    async def _wait_group_exit(self, process: asyncio.subprocess.Process) -> None:
        await process.wait()
        while _group_alive(process.pid):
            await asyncio.sleep(0.1)

    async def _terminate(self, handle: ServerHandle) -> None:
        """SIGTERM the group, escalate to SIGKILL after the grace period."""
        process = handle.process
        if process is None:
            return

        _signal_group(process, signal.SIGTERM)
        try:
            await asyncio.wait_for(self._wait_group_exit(process), timeout=self.stop_grace)
        except asyncio.TimeoutError:
            logger.warning(
                "Force killing server",
                project_id=handle.project_id,
                grace=self.stop_grace,
            )
            _signal_group(process, signal.SIGKILL)
            await process.wait()

    async def stop(self, project_id: str) -> bool:
        """
        Stop a project's server.

        Returns:
            True if a server was stopped, False if none was registered
        """
        async with self._project_lock(project_id):
            return await self._stop_locked(project_id)

    async def _stop_locked(self, project_id: str) -> bool:
        handle = self._registry.lookup(project_id)
        if handle is None:
            return False

        logger.info("Stopping server", project_id=project_id, pid=handle.pid)
        handle.stopping = True
        await self._terminate(handle)

        async with self._lock:
            self._registry.deregister(project_id, handle)
            self._ports.release(handle.port)
            handle.status = ServerStatus.STOPPED
            preview_servers_running.set(len(self._registry))

        if handle.watcher is not None and not handle.watcher.done():
            try:
                await asyncio.wait_for(handle.watcher, timeout=1.0)
            except asyncio.TimeoutError:
                pass

        logger.info("Server stopped", project_id=project_id)
        return True

    async def stop_all(self) -> int:
        """Stop every registered server. Returns how many were stopped."""
        project_ids = [handle.project_id for handle in self._registry.all()]
        if not project_ids:
            return 0
        logger.info("Stopping all servers", count=len(project_ids))
        results = await asyncio.gather(*(self.stop(pid) for pid in project_ids))
        return sum(1 for stopped in results if stopped)
