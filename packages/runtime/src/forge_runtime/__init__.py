"""
Forge Runtime Package - Execution environment for generated projects.

Provides:
- Per-project workspace directories
- Preview port allocation
- Bounded shell execution
- Preview server supervision
"""

from .ports import PORT_RANGE_END, PORT_RANGE_START, PortAllocator
from .shell import ShellResult, run_shell
from .supervisor import (
    READY_MARKERS,
    ProcessSupervisor,
    ServerHandle,
    ServerRegistry,
    is_ready,
    rewrite_command,
)
from .workspace import (
    SKIPPED_DIRS,
    TEXT_EXTENSIONS,
    WorkspaceFile,
    WorkspaceManager,
    is_valid_project_id,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Ports
    "PORT_RANGE_END",
    "PORT_RANGE_START",
    "PortAllocator",
    # Shell
    "ShellResult",
    "run_shell",
    # Supervisor
    "READY_MARKERS",
    "ProcessSupervisor",
    "ServerHandle",
    "ServerRegistry",
    "is_ready",
    "rewrite_command",
    # Workspace
    "SKIPPED_DIRS",
    "TEXT_EXTENSIONS",
    "WorkspaceFile",
    "WorkspaceManager",
    "is_valid_project_id",
]
