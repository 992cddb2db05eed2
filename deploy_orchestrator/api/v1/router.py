"""Main router for API v1."""

from fastapi import APIRouter

from deploy_orchestrator.api.v1 import deployments, health

router = APIRouter(prefix="/v1")

# Include sub-routers
router.include_router(health.router, tags=["health"])
router.include_router(
    deployments.catalog_router,
    prefix="/deployments",
    tags=["deployments"],
)
router.include_router(
    deployments.router,
    prefix="/projects/{project_id}/deployments",
    tags=["deployments"],
)
