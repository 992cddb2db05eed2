"""Dependency injection for API endpoints."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from deploy_orchestrator.config import Settings
from deploy_orchestrator.core.orchestrator import DeploymentOrchestrator
from deploy_orchestrator.services.projects import ProjectDirectory


async def get_settings_dep(request: Request) -> Settings:
    """Get the settings the application was built with."""
    return request.app.state.settings


async def get_orchestrator(request: Request) -> DeploymentOrchestrator:
    """Get the deployment orchestrator."""
    return request.app.state.orchestrator


async def get_project_directory(request: Request) -> ProjectDirectory:
    """Get the project ownership directory."""
    return request.app.state.projects


async def get_caller_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    """Identity of the caller, supplied by the upstream auth layer."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return x_user_id


async def get_authorized_project(
    project_id: str,
    caller_id: Annotated[str, Depends(get_caller_id)],
    projects: Annotated[ProjectDirectory, Depends(get_project_directory)],
) -> str:
    """Project ID after checking the caller owns it."""
    await projects.authorize(project_id, caller_id)
    return project_id


# Type aliases for cleaner signatures
SettingsDep = Annotated[Settings, Depends(get_settings_dep)]
OrchestratorDep = Annotated[DeploymentOrchestrator, Depends(get_orchestrator)]
ProjectIdDep = Annotated[str, Depends(get_authorized_project)]
