"""
Bounded shell command execution inside a project workspace.
"""

import asyncio
import os
import signal
from dataclasses import dataclass
from pathlib import Path

from forge_core import ShellExecutionError, get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_OUTPUT = 1024 * 1024  # 1MB per stream

_READ_CHUNK = 65536


@dataclass
class ShellResult:
    """Outcome of one shell command."""

    command: str
    returncode: int | None
    stdout: str
    stderr: str
    timed_out: bool = False
    truncated: bool = False
    timeout: float = DEFAULT_TIMEOUT

    @property
    def success(self) -> bool:
        return not self.timed_out and self.returncode == 0

    @property
    def error(self) -> str | None:
        """Error text for a failed command."""
        if self.timed_out:
            return f"Command timed out after {self.timeout:g}s: {self.command}"
        if self.returncode != 0:
            return f"Command failed with exit code {self.returncode}: {self.command}"
        return None

    @property
    def output(self) -> str:
        """Most useful single text: stdout, else stderr, else error."""
        return self.stdout or self.stderr or self.error or ""


async def _drain(stream: asyncio.StreamReader, limit: int) -> tuple[bytes, bool]:
    """Read a stream to EOF, keeping at most ``limit`` bytes."""
    buf = bytearray()
    truncated = False
    while True:
        chunk = await stream.read(_READ_CHUNK)
        if not chunk:
            break
        room = limit - len(buf)
        if room > 0:
            buf.extend(chunk[:room])
        if len(chunk) > room:
            truncated = True
    return bytes(buf), truncated


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace").strip()


def _kill_group(process: asyncio.subprocess.Process) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


async def run_shell(
    command: str,
    cwd: Path | str,
    timeout: float = DEFAULT_TIMEOUT,
    max_output: int = DEFAULT_MAX_OUTPUT,
) -> ShellResult:
    """
    Run a shell command and capture its output.

    Args:
        command: Shell command to execute
        cwd: Working directory (must exist)
        timeout: Wall-clock timeout in seconds
        max_output: Bytes kept per stream; the rest is drained and dropped

    Returns:
        ShellResult (a timeout is reported in the result, not raised)

    Raises:
        ShellExecutionError: If the process cannot be spawned
    """
    cwd_path = Path(cwd)
    if not cwd_path.is_dir():
        raise ShellExecutionError(f"Working directory does not exist: {cwd}")

    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd_path),
            start_new_session=True,
        )
    except OSError as e:
        raise ShellExecutionError(f"Failed to run command: {e}", cause=e) from e

    stdout_task = asyncio.create_task(_drain(process.stdout, max_output))
    stderr_task = asyncio.create_task(_drain(process.stderr, max_output))

    timed_out = False
    try:
        await asyncio.wait_for(process.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        timed_out = True
        logger.warning("Command timed out, killing", command=command, timeout=timeout)
        _kill_group(process)
        await process.wait()

    # Orphaned grandchildren may keep the pipes open after a kill
    done, pending = await asyncio.wait({stdout_task, stderr_task}, timeout=1.0)
    for task in pending:
        task.cancel()

    stdout, out_truncated = stdout_task.result() if stdout_task in done else (b"", False)
    stderr, err_truncated = stderr_task.result() if stderr_task in done else (b"", False)

    result = ShellResult(
        command=command,
        returncode=process.returncode,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        timed_out=timed_out,
        truncated=out_truncated or err_truncated,
        timeout=timeout,
    )

    logger.info(
        "Command completed",
        command=command,
        cwd=str(cwd_path),
        returncode=result.returncode,
        timed_out=timed_out,
    )
    return result
