"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel

from deploy_orchestrator import __version__
from deploy_orchestrator.api.deps import OrchestratorDep, SettingsDep
from deploy_orchestrator.models.deployment import utcnow

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str
    environment: str
    active_pipelines: int = 0
    timestamp: datetime


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: SettingsDep, orchestrator: OrchestratorDep) -> HealthResponse:
    """Check API health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        active_pipelines=len(orchestrator.tasks),
        timestamp=utcnow(),
    )
