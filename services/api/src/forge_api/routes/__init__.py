"""
API route modules.
"""

from .generate import router as generate_router
from .health import router as health_router
from .projects import router as projects_router
from .providers import router as providers_router
from .servers import router as servers_router
from .sessions import router as sessions_router

__all__ = [
    "generate_router",
    "health_router",
    "projects_router",
    "providers_router",
    "servers_router",
    "sessions_router",
]
