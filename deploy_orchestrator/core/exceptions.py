"""Custom exceptions for the deployment orchestrator."""

from typing import Any


class DeploymentOrchestratorError(Exception):
    """Base exception for the deployment orchestrator."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(DeploymentOrchestratorError):
    """Caller-supplied configuration is structurally invalid."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, issues: list[str] | None = None):
        super().__init__(message, {"issues": issues} if issues else None)
        self.issues = issues or []


class NotFoundError(DeploymentOrchestratorError):
    """Referenced project or deployment does not exist."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found: {identifier}",
            {"resource": resource, "id": str(identifier)},
        )


class PermissionDeniedError(DeploymentOrchestratorError):
    """Caller does not own the project."""

    status_code = 403
    code = "PERMISSION_DENIED"

    def __init__(self, project_id: str, message: str | None = None):
        super().__init__(
            message or f"You can only manage deployments of your own projects: {project_id}",
            {"project_id": project_id},
        )


class InvalidStateError(DeploymentOrchestratorError):
    """Operation is incompatible with a deployment's current state."""

    status_code = 409
    code = "INVALID_STATE"


class ExternalServiceError(DeploymentOrchestratorError):
    """A delegated step (publish, telemetry) failed."""

    status_code = 502
    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}", {"service": service})
        self.service = service
