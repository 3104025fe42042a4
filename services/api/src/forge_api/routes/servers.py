"""
Preview server routes.
"""

from typing import Any

from fastapi import APIRouter

from forge_core import ServerNotFoundError, get_logger

from ..dependencies import SupervisorDep
from ..schemas import SuccessResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/servers", tags=["Servers"])


@router.get("")
async def list_servers(supervisor: SupervisorDep) -> list[dict[str, Any]]:
    """List running preview servers."""
    return [h.to_dict() for h in supervisor.list_servers()]


@router.get("/{project_id}")
async def get_server(project_id: str, supervisor: SupervisorDep) -> dict[str, Any]:
    """Get the preview server of a project."""
    handle = supervisor.get(project_id)
    if handle is None:
        raise ServerNotFoundError(
            f"No server running for project: {project_id}",
            context={"project_id": project_id},
        )
    return handle.to_dict()


@router.delete("/{project_id}")
async def stop_server(project_id: str, supervisor: SupervisorDep) -> SuccessResponse:
    """Stop the preview server of a project."""
    if not await supervisor.stop(project_id):
        raise ServerNotFoundError(
            f"No server running for project: {project_id}",
            context={"project_id": project_id},
        )
    logger.info("Server stopped on request", project_id=project_id)
    return SuccessResponse(message=f"Server for {project_id} stopped")
