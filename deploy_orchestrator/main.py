"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from deploy_orchestrator import __version__
from deploy_orchestrator.api.middleware import RequestLoggingMiddleware
from deploy_orchestrator.api.v1.router import router as v1_router
from deploy_orchestrator.config import Settings, get_settings
from deploy_orchestrator.core.exceptions import DeploymentOrchestratorError
from deploy_orchestrator.core.orchestrator import DeploymentOrchestrator
from deploy_orchestrator.services.projects import ProjectDirectory
from deploy_orchestrator.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    orchestrator: DeploymentOrchestrator | None = None,
    projects: ProjectDirectory | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    orchestrator = orchestrator or DeploymentOrchestrator.from_settings(settings)
    projects = projects or ProjectDirectory(settings.project_owners)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        # Startup
        configure_logging(settings)
        logger.info(
            "application.starting",
            version=__version__,
            environment=settings.app_env,
        )

        yield

        # Shutdown
        await orchestrator.shutdown(settings.shutdown_grace_seconds)
        logger.info("application.shutdown")

    app = FastAPI(
        title="Deployment Orchestrator API",
        description="Runs project deployments through a build and publish pipeline",
        version=__version__,
        docs_url="/docs" if settings.app_debug else None,
        redoc_url="/redoc" if settings.app_debug else None,
        lifespan=lifespan,
    )

    # Services shared by request handlers
    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.state.projects = projects

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # Register exception handlers
    @app.exception_handler(DeploymentOrchestratorError)
    async def orchestrator_error_handler(
        request: Request, exc: DeploymentOrchestratorError
    ) -> JSONResponse:
        """Handle application-specific errors."""
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            "request.failed",
            code=exc.code,
            error=exc.message,
            path=request.url.path,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": {
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.details,
                }
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors."""
        logger.error(
            "unhandled_exception",
            error=str(exc),
            path=request.url.path,
            exc_info=True,
        )

        if settings.is_development:
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": {
                        "code": "INTERNAL_ERROR",
                        "message": str(exc),
                        "type": type(exc).__name__,
                    }
                },
            )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                }
            },
        )

    # Include routers
    app.include_router(v1_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "deploy_orchestrator.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
