"""
Project file routes.
"""

from typing import Any

from fastapi import APIRouter, Query

from ..dependencies import WorkspaceDep

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get("/{project_id}/files")
async def list_project_files(project_id: str, workspace: WorkspaceDep) -> list[dict[str, Any]]:
    """List the text files of a project."""
    files = await workspace.list_files(project_id)
    return [f.to_dict() for f in files]


@router.get("/{project_id}/files/content")
async def get_file_content(
    project_id: str,
    workspace: WorkspaceDep,
    path: str = Query(..., min_length=1, description="Path relative to the project"),
) -> dict[str, Any]:
    """Read one project file."""
    file = await workspace.read_file(project_id, path)
    return file.to_dict()
