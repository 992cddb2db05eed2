"""External collaborators of the deployment orchestrator."""

from deploy_orchestrator.services.projects import ProjectDirectory
from deploy_orchestrator.services.publisher import (
    PublishArtifact,
    PublishBackend,
    SimulatedPublisher,
)
from deploy_orchestrator.services.telemetry import SimulatedTelemetrySource, TelemetrySource

__all__ = [
    "ProjectDirectory",
    "PublishArtifact",
    "PublishBackend",
    "SimulatedPublisher",
    "SimulatedTelemetrySource",
    "TelemetrySource",
]
