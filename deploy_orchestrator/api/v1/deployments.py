"""Deployment endpoints."""

import asyncio
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Body, Query, status
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

from deploy_orchestrator.api.deps import OrchestratorDep, ProjectIdDep, SettingsDep
from deploy_orchestrator.core.events import Event
from deploy_orchestrator.models.deployment import (
    DeploymentResponse,
    LogEntry,
    PlatformInfo,
)
from deploy_orchestrator.models.metrics import DeploymentMetrics, TimeRange
from deploy_orchestrator.utils.logging import get_logger

router = APIRouter()
catalog_router = APIRouter()
logger = get_logger(__name__)


class DeploymentActionResponse(BaseModel):
    """Response for calls that create or change a deployment."""

    message: str
    deployment: DeploymentResponse


class DeploymentStatusResponse(BaseModel):
    """Current deployment of a project, if it has one."""

    deployment: DeploymentResponse | None = None


class DeploymentLogsResponse(BaseModel):
    """Log entries of one deployment."""

    deployment_id: UUID | None = None
    logs: list[LogEntry]


class DeploymentHistoryResponse(BaseModel):
    """Recent deployments, newest first."""

    deployments: list[DeploymentResponse]
    limit: int


class ConfigValidationResponse(BaseModel):
    """Result of checking a deployment configuration."""

    valid: bool
    issues: list[str] = []


class RollbackRequest(BaseModel):
    """Request to roll back to an earlier deployment."""

    target_deployment_id: UUID


@catalog_router.get(
    "/platforms",
    response_model=list[PlatformInfo],
    summary="List supported platforms",
)
async def list_platforms(orchestrator: OrchestratorDep) -> list[PlatformInfo]:
    """Return the platforms deployments can target."""
    return orchestrator.platforms()


@router.post(
    "",
    response_model=DeploymentActionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a deployment",
    description="Create a deployment and run its pipeline in the background. Returns immediately with the pending deployment.",
)
async def start_deployment(
    project_id: ProjectIdDep,
    orchestrator: OrchestratorDep,
    config: Annotated[dict[str, Any], Body()],
) -> DeploymentActionResponse:
    """Start deploying a project."""
    record = await orchestrator.start(project_id, config)
    return DeploymentActionResponse(
        message="Deployment started",
        deployment=DeploymentResponse.from_record(record),
    )


@router.post(
    "/validate",
    response_model=ConfigValidationResponse,
    summary="Check a deployment configuration",
)
async def validate_config(
    project_id: ProjectIdDep,
    orchestrator: OrchestratorDep,
    config: Annotated[dict[str, Any], Body()],
) -> ConfigValidationResponse:
    """Report the problems ``start`` would reject, without creating anything."""
    issues = orchestrator.validate_config(config)
    return ConfigValidationResponse(valid=not issues, issues=issues)


@router.get(
    "/status",
    response_model=DeploymentStatusResponse,
    summary="Get current deployment status",
)
async def get_status(
    project_id: ProjectIdDep,
    orchestrator: OrchestratorDep,
) -> DeploymentStatusResponse:
    """Return the project's most recently created deployment."""
    record = await orchestrator.get_status(project_id)
    return DeploymentStatusResponse(
        deployment=DeploymentResponse.from_record(record) if record else None
    )


@router.get(
    "/logs",
    response_model=DeploymentLogsResponse,
    summary="Get deployment logs",
)
async def get_logs(
    project_id: ProjectIdDep,
    orchestrator: OrchestratorDep,
    deployment_id: UUID | None = None,
) -> DeploymentLogsResponse:
    """Return the logs of a deployment, defaulting to the latest one."""
    if deployment_id is None:
        latest = await orchestrator.get_status(project_id)
        deployment_id = latest.id if latest else None
    logs = await orchestrator.get_logs(project_id, deployment_id) if deployment_id else []
    return DeploymentLogsResponse(deployment_id=deployment_id, logs=logs)


@router.get(
    "/history",
    response_model=DeploymentHistoryResponse,
    summary="List recent deployments",
)
async def get_history(
    project_id: ProjectIdDep,
    orchestrator: OrchestratorDep,
    settings: SettingsDep,
    limit: Annotated[int | None, Query(ge=1)] = None,
) -> DeploymentHistoryResponse:
    """Return the project's deployments, newest first."""
    limit = min(limit or settings.history_default_limit, settings.history_max_limit)
    records = await orchestrator.get_history(project_id, limit)
    return DeploymentHistoryResponse(
        deployments=[DeploymentResponse.from_record(r) for r in records],
        limit=limit,
    )


@router.get(
    "/metrics",
    response_model=DeploymentMetrics,
    summary="Get live deployment metrics",
)
async def get_metrics(
    project_id: ProjectIdDep,
    orchestrator: OrchestratorDep,
    time_range: TimeRange = TimeRange.DAY,
) -> DeploymentMetrics:
    """Return traffic statistics for the project's live deployment."""
    return await orchestrator.get_metrics(project_id, time_range)


@router.post(
    "/rollback",
    response_model=DeploymentActionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Roll back to a previous deployment",
)
async def rollback_deployment(
    project_id: ProjectIdDep,
    orchestrator: OrchestratorDep,
    data: RollbackRequest,
) -> DeploymentActionResponse:
    """Redeploy the configuration of an earlier successful deployment."""
    record = await orchestrator.rollback(project_id, data.target_deployment_id)
    return DeploymentActionResponse(
        message="Rollback started",
        deployment=DeploymentResponse.from_record(record),
    )


@router.post(
    "/{deployment_id}/cancel",
    response_model=DeploymentActionResponse,
    summary="Cancel a deployment",
)
async def cancel_deployment(
    project_id: ProjectIdDep,
    deployment_id: UUID,
    orchestrator: OrchestratorDep,
) -> DeploymentActionResponse:
    """Cancel an in-flight deployment. Finished deployments are left as they are."""
    record = await orchestrator.cancel(project_id, deployment_id)
    return DeploymentActionResponse(
        message="Deployment cancelled successfully",
        deployment=DeploymentResponse.from_record(record),
    )


@router.get(
    "/{deployment_id}",
    response_model=DeploymentResponse,
    summary="Get a deployment",
)
async def get_deployment(
    project_id: ProjectIdDep,
    deployment_id: UUID,
    orchestrator: OrchestratorDep,
) -> DeploymentResponse:
    """Return one deployment of the project."""
    record = await orchestrator.get_deployment(project_id, deployment_id)
    return DeploymentResponse.from_record(record)


@router.get(
    "/{deployment_id}/stream",
    summary="Stream deployment events (SSE)",
)
async def stream_deployment_events(
    project_id: ProjectIdDep,
    deployment_id: UUID,
    orchestrator: OrchestratorDep,
) -> EventSourceResponse:
    """Stream status changes and log lines of a deployment using Server-Sent Events."""
    await orchestrator.get_deployment(project_id, deployment_id)
    events = orchestrator.events

    async def event_generator():
        # Subscribe before reading the status so no transition slips between
        queue = events.subscribe(deployment_id) if events else None
        if events:
            logger.info(
                "stream.connected",
                deployment_id=str(deployment_id),
                subscribers=events.subscriber_count(deployment_id),
            )

        try:
            record = await orchestrator.get_deployment(project_id, deployment_id)
            yield Event(
                event_type="connected",
                data={"deployment_id": str(deployment_id), "status": record.status.value},
            ).to_sse()

            if queue is None or record.is_terminal:
                return

            # Stream events until the deployment finishes or client disconnects
            while True:
                try:
                    event: Event = await asyncio.wait_for(queue.get(), timeout=30.0)
                    yield event.to_sse()

                    if event.is_terminal:
                        break

                except asyncio.TimeoutError:
                    # Send keepalive
                    yield {"event": "keepalive", "data": "{}"}

        finally:
            if queue is not None:
                events.unsubscribe(deployment_id, queue)

    return EventSourceResponse(event_generator())
