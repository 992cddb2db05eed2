"""Core deployment orchestration."""

from deploy_orchestrator.core.exceptions import (
    DeploymentOrchestratorError,
    ExternalServiceError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from deploy_orchestrator.core.events import Event, EventBus
from deploy_orchestrator.core.logs import DeploymentLogSink
from deploy_orchestrator.core.state_machine import DeploymentStateMachine
from deploy_orchestrator.core.store import DeploymentStore
from deploy_orchestrator.core.tasks import DeploymentTaskPool

__all__ = [
    "DeploymentOrchestratorError",
    "ExternalServiceError",
    "InvalidStateError",
    "NotFoundError",
    "PermissionDeniedError",
    "ValidationError",
    "Event",
    "EventBus",
    "DeploymentLogSink",
    "DeploymentStateMachine",
    "DeploymentStore",
    "DeploymentTaskPool",
]
