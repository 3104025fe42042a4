"""
Per-project workspace directories.

Each project id maps to one directory under a fixed root. Every path handed
to the manager is resolved against that directory and rejected if it
escapes it.
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path

import aiofiles

from forge_core import PathEscapeError, WorkspaceError, get_logger

logger = get_logger(__name__)

# Files returned on read-back
TEXT_EXTENSIONS = frozenset({
    ".html", ".css", ".js", ".json", ".md", ".txt",
    ".py", ".ts", ".jsx", ".tsx",
})

# Build and version-control directories skipped when listing
SKIPPED_DIRS = frozenset({"node_modules", ".git", "dist", "build", "__pycache__"})

_PROJECT_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


def is_valid_project_id(project_id: str | None) -> bool:
    """True if the id can name a project directory."""
    if not project_id or ".." in project_id:
        return False
    return _PROJECT_ID_RE.match(project_id) is not None


@dataclass
class WorkspaceFile:
    """A text file read back from a project workspace."""

    path: str
    name: str
    content: str
    size: int

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "name": self.name,
            "content": self.content,
            "size": self.size,
        }


class WorkspaceManager:
    """
    Maps project ids to isolated directories.

    Owns filesystem paths only; it never starts processes.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()

    def ensure_root(self) -> Path:
        """Create the workspace root if missing."""
        if not self.root.exists():
            self.root.mkdir(parents=True, exist_ok=True)
            logger.info("Created workspace root", root=str(self.root))
        return self.root

    def _validate_project_id(self, project_id: str) -> None:
        if not is_valid_project_id(project_id):
            raise WorkspaceError(
                f"Invalid project id: {project_id!r}",
                context={"project_id": project_id},
            )

    def project_path(self, project_id: str) -> Path:
        """Directory for a project, without creating it."""
        self._validate_project_id(project_id)
        return self.root / project_id

    def project_dir(self, project_id: str) -> Path:
        """Directory for a project, created on demand."""
        path = self.project_path(project_id)
        if not path.exists():
            path.mkdir(parents=True, exist_ok=True)
            logger.info("Created project directory", project_id=project_id, path=str(path))
        return path

    def resolve(self, project_id: str, relative_path: str) -> Path:
        """
        Resolve a path inside the project directory.

        Raises:
            PathEscapeError: If the path is absolute or resolves outside
                the project directory
        """
        base = self.project_path(project_id).resolve()

        if not relative_path or os.path.isabs(relative_path):
            raise PathEscapeError(
                f"Invalid path: {relative_path!r} must be relative to the project",
                context={"project_id": project_id, "path": relative_path},
            )

        resolved = (base / relative_path).resolve()
        try:
            resolved.relative_to(base)
        except ValueError:
            raise PathEscapeError(
                f"Path escapes workspace: {relative_path}",
                context={"project_id": project_id, "path": relative_path},
            )
        if resolved == base:
            raise PathEscapeError(
                f"Path refers to the project root: {relative_path}",
                context={"project_id": project_id, "path": relative_path},
            )

        return resolved

    async def write_file(self, project_id: str, relative_path: str, content: str) -> int:
        """
        Write (overwrite) a text file, creating parent directories.

        Returns:
            Number of bytes written
        """
        self.project_dir(project_id)
        file_path = self.resolve(project_id, relative_path)

        data = content.encode("utf-8")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise WorkspaceError(
                f"Failed to write {relative_path}: {e}",
                context={"project_id": project_id, "path": relative_path},
                cause=e,
            ) from e

        logger.info("File written", project_id=project_id, path=relative_path, size=len(data))
        return len(data)

    async def read_file(self, project_id: str, relative_path: str) -> WorkspaceFile:
        """Read one allow-listed text file."""
        file_path = self.resolve(project_id, relative_path)

        if file_path.suffix.lower() not in TEXT_EXTENSIONS:
            raise WorkspaceError(
                f"File type not readable: {relative_path}",
                context={"project_id": project_id, "path": relative_path},
            )
        if not file_path.is_file():
            raise WorkspaceError(
                f"File not found: {relative_path}",
                status_code=404,
                context={"project_id": project_id, "path": relative_path},
            )

        async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
            content = await f.read()

        return WorkspaceFile(
            path=relative_path,
            name=file_path.name,
            content=content,
            size=file_path.stat().st_size,
        )

    async def list_files(self, project_id: str) -> list[WorkspaceFile]:
        """
        Read back all allow-listed text files of a project.

        Unreadable files and anything resolving outside the project
        (e.g. symlinks) are skipped.
        """
        base = self.project_path(project_id)
        if not base.is_dir():
            return []
        base = base.resolve()

        files: list[WorkspaceFile] = []
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
            for name in sorted(filenames):
                full = Path(dirpath) / name
                if full.suffix.lower() not in TEXT_EXTENSIONS:
                    continue
                try:
                    full.resolve().relative_to(base)
                except ValueError:
                    continue
                relative = full.relative_to(base).as_posix()
                try:
                    async with aiofiles.open(full, "r", encoding="utf-8") as f:
                        content = await f.read()
                except (OSError, UnicodeDecodeError) as e:
                    logger.debug("Skipping unreadable file", project_id=project_id, path=relative, error=str(e))
                    continue
                files.append(
                    WorkspaceFile(path=relative, name=name, content=content, size=full.stat().st_size)
                )

        return files
