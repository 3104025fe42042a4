"""
Health check routes.
"""

import os
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter

from forge_core import get_logger

from ..dependencies import SupervisorDep, WorkspaceDep

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health() -> dict[str, Any]:
    """Basic health check."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/live")
async def liveness() -> dict[str, Any]:
    """
    Liveness probe - checks if the API is running.

    This should always return 200 if the server is up.
    """
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness(workspace: WorkspaceDep, supervisor: SupervisorDep) -> dict[str, Any]:
    """
    Readiness probe - checks if the API can handle requests.

    Verifies that the workspace root exists and is writable.
    """
    checks: dict[str, Any] = {}
    overall_healthy = True

    root = workspace.root
    if root.is_dir() and os.access(root, os.W_OK):
        checks["workspace"] = {"status": "healthy", "root": str(root)}
    else:
        checks["workspace"] = {"status": "unhealthy", "root": str(root)}
        overall_healthy = False
        logger.warning("Workspace root not writable", root=str(root))

    checks["servers"] = {
        "status": "healthy",
        "running": len(supervisor.list_servers()),
        "ports_claimed": len(supervisor.ports.claimed),
    }

    return {
        "status": "ready" if overall_healthy else "not_ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": checks,
    }
