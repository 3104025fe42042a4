"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from forge_core import ForgeError, configure_logging, get_logger, get_settings
from forge_core.metrics import app_info

from . import __version__
from .config import get_api_config
from .dependencies import get_supervisor, get_workspace
from .middleware import LoggingMiddleware
from .routes import (
    generate_router,
    health_router,
    projects_router,
    providers_router,
    servers_router,
    sessions_router,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Manages startup and shutdown tasks.
    """
    settings = get_settings()
    configure_logging(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        service_name=settings.service_name,
    )
    logger.info("Starting API server...")
    app_info.info({"version": __version__, "environment": settings.environment})

    root = get_workspace().ensure_root()
    logger.info("Workspace ready", root=str(root))

    logger.info("API server started")

    yield

    logger.info("Shutting down API server...")

    stopped = await get_supervisor().stop_all()
    if stopped:
        logger.info("Stopped preview servers", count=stopped)

    logger.info("API server stopped")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """
    config = get_api_config()

    app = FastAPI(
        title="iterforge API",
        description="Iterative application builder driven by a language model",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
    )
    app.add_middleware(LoggingMiddleware)

    app.include_router(health_router)
    app.include_router(generate_router, prefix="/api")
    app.include_router(sessions_router, prefix="/api")
    app.include_router(servers_router, prefix="/api")
    app.include_router(projects_router, prefix="/api")
    app.include_router(providers_router, prefix="/api")

    if config.serve_workspace:
        # The root is created by the lifespan handler before the first request
        app.mount(
            "/workspace",
            StaticFiles(directory=get_workspace().root, html=True, check_dir=False),
            name="workspace",
        )

    # Prometheus metrics endpoint
    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST,
        )

    @app.exception_handler(ForgeError)
    async def forge_exception_handler(
        request: Request,
        exc: ForgeError,
    ) -> JSONResponse:
        """Map domain errors to their HTTP status."""
        logger.warning(
            "Request error",
            path=request.url.path,
            error=exc.message,
            error_code=exc.error_code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if config.debug else None,
            },
        )

    return app


# Create application instance
app = create_app()


def main() -> None:
    """Run the API server."""
    import uvicorn

    config = get_api_config()

    uvicorn.run(
        "forge_api.main:app",
        host=config.host,
        port=config.port,
        reload=config.reload,
        log_level="info" if not config.debug else "debug",
    )


if __name__ == "__main__":
    main()
