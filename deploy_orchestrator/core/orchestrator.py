"""Deployment Orchestrator.

Synchronous-facing operations for starting, inspecting, cancelling and
rolling back deployments. Pipelines run in the background; every operation
here returns without waiting for them.
"""

from typing import Any
from uuid import UUID

from deploy_orchestrator.config import Settings
from deploy_orchestrator.core.events import EventBus
from deploy_orchestrator.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from deploy_orchestrator.core.executor import PipelineExecutor
from deploy_orchestrator.core.logs import DeploymentLogSink
from deploy_orchestrator.core.metrics import MetricsReporter
from deploy_orchestrator.core.state_machine import DeploymentStateMachine
from deploy_orchestrator.core.store import DeploymentStore
from deploy_orchestrator.core.tasks import DeploymentTaskPool
from deploy_orchestrator.models.deployment import (
    PLATFORM_CATALOG,
    DeploymentConfig,
    DeploymentRecord,
    DeploymentStatus,
    LogEntry,
    Platform,
    PlatformInfo,
    config_issues,
)
from deploy_orchestrator.models.metrics import DeploymentMetrics, TimeRange
from deploy_orchestrator.services.publisher import PublishBackend, SimulatedPublisher
from deploy_orchestrator.services.telemetry import SimulatedTelemetrySource, TelemetrySource
from deploy_orchestrator.utils.logging import get_logger


class DeploymentOrchestrator:
    """Entry point for deployment operations.

    Authorization is the caller's job: by the time a method here runs, the
    caller has already been checked against the project's owner.
    """

    def __init__(
        self,
        store: DeploymentStore,
        state_machine: DeploymentStateMachine,
        executor: PipelineExecutor,
        tasks: DeploymentTaskPool,
        metrics: MetricsReporter,
        events: EventBus | None = None,
    ):
        self.store = store
        self.state_machine = state_machine
        self.executor = executor
        self.tasks = tasks
        self.metrics = metrics
        self.events = events
        self.logger = get_logger("orchestrator")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        publisher: PublishBackend | None = None,
        telemetry: TelemetrySource | None = None,
    ) -> "DeploymentOrchestrator":
        """Wire up an orchestrator with its in-process collaborators."""
        events = EventBus()
        store = DeploymentStore()
        state_machine = DeploymentStateMachine(store, DeploymentLogSink(events), events)

        if publisher is None:
            publisher = SimulatedPublisher(
                fail_platforms={Platform(p) for p in settings.publish_fail_platforms},
            )
        if telemetry is None:
            telemetry = SimulatedTelemetrySource(available=settings.telemetry_available)

        executor = PipelineExecutor(
            store,
            state_machine,
            publisher,
            step_delay_seconds=settings.pipeline_step_delay_seconds,
            rollback_step_delay_seconds=settings.rollback_step_delay_seconds,
        )
        return cls(
            store=store,
            state_machine=state_machine,
            executor=executor,
            tasks=DeploymentTaskPool(),
            metrics=MetricsReporter(telemetry),
            events=events,
        )

    async def start(self, project_id: str, config: dict[str, Any]) -> DeploymentRecord:
        """Create a pending deployment and launch its pipeline.

        Args:
            project_id: The project to deploy
            config: Caller's configuration bag, stored verbatim

        Returns:
            Snapshot of the new record, always ``pending``

        Raises:
            ValidationError: If the configuration is invalid; no record is created
        """
        validated = self._validate(config)

        record = await self.store.create(
            DeploymentRecord(
                project_id=project_id,
                platform=validated.platform,
                configuration=dict(config),
            )
        )
        self.tasks.spawn(record.id, self.executor.run(record.id))

        self.logger.info(
            "orchestrator.deployment.started",
            deployment_id=str(record.id),
            project_id=project_id,
            platform=record.platform.value,
        )
        return record

    async def get_status(self, project_id: str) -> DeploymentRecord | None:
        """Most recently created deployment for the project, if any."""
        return await self.store.latest(project_id)

    async def get_deployment(self, project_id: str, deployment_id: UUID) -> DeploymentRecord:
        """A specific deployment of the project.

        Raises:
            NotFoundError: If the deployment does not exist for this project
        """
        record = await self.store.get_for_project(project_id, deployment_id)
        if record is None:
            raise NotFoundError("Deployment", deployment_id)
        return record

    async def get_logs(
        self, project_id: str, deployment_id: UUID | None = None
    ) -> list[LogEntry]:
        """Log entries of a deployment, or of the latest one when no id is given."""
        if deployment_id is None:
            record = await self.store.latest(project_id)
        else:
            record = await self.store.get_for_project(project_id, deployment_id)
        return DeploymentLogSink.read(record)

    async def cancel(self, project_id: str, deployment_id: UUID) -> DeploymentRecord:
        """Cancel a deployment. Cancelling a finished deployment changes nothing.

        The status flips immediately; the background run notices at its next
        step boundary and stops.

        Raises:
            NotFoundError: If the deployment does not exist for this project
        """
        await self.get_deployment(project_id, deployment_id)
        record = await self.state_machine.cancel(deployment_id)

        self.logger.info(
            "orchestrator.deployment.cancelled",
            deployment_id=str(deployment_id),
            project_id=project_id,
            status=record.status.value,
        )
        return record

    async def rollback(self, project_id: str, target_deployment_id: UUID) -> DeploymentRecord:
        """Redeploy the configuration of an earlier successful deployment.

        Raises:
            NotFoundError: If the target does not exist for this project
            InvalidStateError: If the target did not succeed; no record is created
        """
        target = await self.store.get_for_project(project_id, target_deployment_id)
        if target is None:
            raise NotFoundError("Target deployment", target_deployment_id)

        if target.status != DeploymentStatus.SUCCESS:
            raise InvalidStateError(
                "Can only rollback to successful deployments",
                {
                    "target_deployment_id": str(target_deployment_id),
                    "status": target.status.value,
                },
            )

        record = await self.store.create(
            DeploymentRecord(
                project_id=project_id,
                platform=target.platform,
                configuration=dict(target.configuration),
                is_rollback=True,
                rollback_from_id=target.id,
            )
        )
        self.tasks.spawn(record.id, self.executor.run(record.id))

        self.logger.info(
            "orchestrator.rollback.started",
            deployment_id=str(record.id),
            target_deployment_id=str(target_deployment_id),
            project_id=project_id,
        )
        return record

    async def get_history(self, project_id: str, limit: int = 10) -> list[DeploymentRecord]:
        """Up to ``limit`` most recent deployments, newest first."""
        if limit < 1:
            raise ValidationError("History limit must be at least 1", [f"limit: {limit}"])
        return await self.store.history(project_id, limit)

    async def get_metrics(
        self, project_id: str, time_range: TimeRange = TimeRange.DAY
    ) -> DeploymentMetrics:
        """Traffic summary for the project's latest successful deployment."""
        target = await self.store.latest_successful(project_id)
        return await self.metrics.report(project_id, time_range, target)

    @staticmethod
    def validate_config(config: Any) -> list[str]:
        """Problems that would make ``start`` reject this configuration."""
        return config_issues(config)

    @staticmethod
    def platforms() -> list[PlatformInfo]:
        """Catalog of supported platforms."""
        return list(PLATFORM_CATALOG.values())

    def _validate(self, config: Any) -> DeploymentConfig:
        issues = config_issues(config)
        if issues:
            self.logger.warning("orchestrator.config_rejected", issues=issues)
            raise ValidationError(f"Invalid deployment configuration: {'; '.join(issues)}", issues)
        return DeploymentConfig.model_validate(config)

    async def shutdown(self, grace_seconds: float = 10.0) -> None:
        """Drain in-flight pipelines."""
        await self.tasks.shutdown(grace_seconds)
