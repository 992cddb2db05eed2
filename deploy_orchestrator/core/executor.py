"""Pipeline Executor.

Drives a single deployment record through its fixed step plan. Every step
first checks that the record is still building, so a cancel takes effect at
the next step boundary and the run discards whatever it was doing.
"""

import asyncio
from dataclasses import dataclass
from uuid import UUID

from deploy_orchestrator.core.exceptions import ExternalServiceError
from deploy_orchestrator.core.state_machine import DeploymentStateMachine
from deploy_orchestrator.core.store import DeploymentStore
from deploy_orchestrator.models.deployment import DeploymentRecord, PublishResult
from deploy_orchestrator.services.publisher import PublishArtifact, PublishBackend
from deploy_orchestrator.utils.logging import get_logger

SHUTDOWN_ERROR = "Deployment interrupted by service shutdown"


@dataclass(frozen=True)
class PipelineStep:
    """One named step of a pipeline plan."""

    message: str
    publishes: bool = False


DEPLOY_STEPS: tuple[PipelineStep, ...] = (
    PipelineStep("Cloning repository..."),
    PipelineStep("Installing dependencies..."),
    PipelineStep("Running build command..."),
    PipelineStep("Optimizing assets..."),
    PipelineStep("Deploying to CDN...", publishes=True),
    PipelineStep("Configuring domain..."),
    PipelineStep("Deployment complete!"),
)

ROLLBACK_STEPS: tuple[PipelineStep, ...] = (
    PipelineStep("Preparing rollback..."),
    PipelineStep("Switching to previous version...", publishes=True),
    PipelineStep("Updating CDN configuration..."),
    PipelineStep("Rollback complete!"),
)


class PipelineExecutor:
    """Runs deployment and rollback pipelines.

    Pipeline failures are never raised to a caller; they are recorded on the
    deployment as ``failed`` with the cause in ``error``.
    """

    def __init__(
        self,
        store: DeploymentStore,
        state_machine: DeploymentStateMachine,
        publisher: PublishBackend,
        step_delay_seconds: float = 2.0,
        rollback_step_delay_seconds: float = 1.5,
    ):
        self.store = store
        self.state_machine = state_machine
        self.publisher = publisher
        self.step_delay_seconds = step_delay_seconds
        self.rollback_step_delay_seconds = rollback_step_delay_seconds
        self.logger = get_logger("executor")

    async def run(self, deployment_id: UUID) -> None:
        """Run the pipeline for a record until it reaches a terminal state."""
        record = await self.store.get(deployment_id)
        if record is None:
            self.logger.error("executor.deployment_missing", deployment_id=str(deployment_id))
            return

        if record.is_rollback:
            steps = ROLLBACK_STEPS
            delay = self.rollback_step_delay_seconds
            opening = f"Rolling back to deployment {record.rollback_from_id}..."
        else:
            steps = DEPLOY_STEPS
            delay = self.step_delay_seconds
            opening = "Starting deployment process..."

        log = self.logger.bind(
            deployment_id=str(deployment_id),
            project_id=record.project_id,
            rollback=record.is_rollback,
        )

        try:
            if not await self.state_machine.begin(deployment_id, opening):
                log.info("executor.skipped", reason="not_pending")
                return

            log.info("executor.pipeline.started", steps=len(steps))
            result = await self._run_steps(record, steps, delay)
            if result is None:
                log.info("executor.pipeline.halted", reason="cancelled")
                return

            if await self.state_machine.succeed(deployment_id, result):
                log.info("executor.pipeline.completed", url=result.url)
            else:
                log.info("executor.pipeline.halted", reason="cancelled")

        except asyncio.CancelledError:
            await self.state_machine.fail(deployment_id, SHUTDOWN_ERROR)
            log.warning("executor.pipeline.interrupted")
            raise
        except Exception as e:
            error = e if isinstance(e, ExternalServiceError) else ExternalServiceError("pipeline", str(e))
            if await self.state_machine.fail(deployment_id, error.message):
                log.error("executor.pipeline.failed", error=error.message)
            else:
                log.info("executor.pipeline.halted", reason="cancelled", error=error.message)

    async def _run_steps(
        self,
        record: DeploymentRecord,
        steps: tuple[PipelineStep, ...],
        delay: float,
    ) -> PublishResult | None:
        """Execute each step in order. Returns None once the run is cancelled."""
        result: PublishResult | None = None

        for index, step in enumerate(steps, start=1):
            # Halt without touching the record once it left ``building``
            if not await self.state_machine.log_step(record.id, step.message):
                return None

            self.logger.debug(
                "executor.step",
                deployment_id=str(record.id),
                step=index,
                total=len(steps),
                message=step.message,
            )

            if step.publishes:
                result = await self.publisher.publish(
                    record.platform,
                    PublishArtifact(
                        project_id=record.project_id,
                        deployment_id=record.id,
                        output_directory=record.configuration.get("output_directory") or "dist",
                    ),
                    record.configuration,
                )
            elif delay:
                await asyncio.sleep(delay)

        if result is None:
            raise ExternalServiceError("pipeline", "Pipeline finished without a publish result")
        return result
