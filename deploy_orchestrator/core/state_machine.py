"""Deployment state machine.

All status changes go through ``DeploymentStateMachine`` and are applied
under the record's lock, so two transitions for the same record can never
interleave (e.g. a late ``success`` racing a ``cancel``). Records for
different deployments use different locks and never wait on each other.

Transitions::

    pending  --begin-->   building
    building --succeed--> success
    building --fail-->    failed
    pending  --fail-->    failed     (pipeline could not start)
    pending | building --cancel--> cancelled

Terminal states (success, failed, cancelled) have no outgoing transitions.
"""

import asyncio
from uuid import UUID

from deploy_orchestrator.core.events import EventBus
from deploy_orchestrator.core.exceptions import InvalidStateError, NotFoundError
from deploy_orchestrator.core.logs import DeploymentLogSink
from deploy_orchestrator.core.store import DeploymentStore
from deploy_orchestrator.models.deployment import (
    DeploymentRecord,
    DeploymentStatus,
    LogLevel,
    PublishResult,
    utcnow,
)
from deploy_orchestrator.utils.logging import get_logger


ALLOWED_TRANSITIONS: dict[DeploymentStatus, frozenset[DeploymentStatus]] = {
    DeploymentStatus.PENDING: frozenset(
        {DeploymentStatus.BUILDING, DeploymentStatus.FAILED, DeploymentStatus.CANCELLED}
    ),
    DeploymentStatus.BUILDING: frozenset(
        {DeploymentStatus.SUCCESS, DeploymentStatus.FAILED, DeploymentStatus.CANCELLED}
    ),
    DeploymentStatus.SUCCESS: frozenset(),
    DeploymentStatus.FAILED: frozenset(),
    DeploymentStatus.CANCELLED: frozenset(),
}


def can_transition(current: DeploymentStatus, target: DeploymentStatus) -> bool:
    """Check whether ``current -> target`` is a legal transition."""
    return target in ALLOWED_TRANSITIONS[current]


class DeploymentStateMachine:
    """Applies status transitions and log appends to deployment records."""

    def __init__(
        self,
        store: DeploymentStore,
        log_sink: DeploymentLogSink,
        events: EventBus | None = None,
    ):
        self.store = store
        self.log_sink = log_sink
        self.events = events
        self.logger = get_logger("state_machine")

    def _lock(self, deployment_id: UUID) -> asyncio.Lock:
        if deployment_id not in self.store:
            raise NotFoundError("Deployment", deployment_id)
        return self.store.lock_for(deployment_id)

    async def _apply(
        self,
        record: DeploymentRecord,
        target: DeploymentStatus,
    ) -> None:
        """Move a live record to ``target``. Caller must hold the lock."""
        previous = record.status
        if not can_transition(previous, target):
            raise InvalidStateError(
                f"Cannot transition deployment from {previous.value} to {target.value}",
                {
                    "deployment_id": str(record.id),
                    "from": previous.value,
                    "to": target.value,
                },
            )

        now = utcnow()
        record.status = target
        record.updated_at = now
        if target.is_terminal:
            record.completed_at = now

        self.logger.info(
            "state_machine.transition",
            deployment_id=str(record.id),
            project_id=record.project_id,
            previous=previous.value,
            status=target.value,
        )

        if self.events:
            await self.events.publish_status(record.id, target, previous)

    async def begin(self, deployment_id: UUID, message: str) -> bool:
        """Start building. Returns False if the record is no longer pending."""
        async with self._lock(deployment_id):
            record = self.store.live(deployment_id)
            if record.status != DeploymentStatus.PENDING:
                return False
            await self._apply(record, DeploymentStatus.BUILDING)
            await self.log_sink.append(record, message)
            return True

    async def log_step(
        self,
        deployment_id: UUID,
        message: str,
        level: LogLevel = LogLevel.INFO,
    ) -> bool:
        """Append a step log. Returns False once the record has left ``building``."""
        async with self._lock(deployment_id):
            record = self.store.live(deployment_id)
            if record.status != DeploymentStatus.BUILDING:
                return False
            await self.log_sink.append(record, message, level)
            return True

    async def succeed(
        self,
        deployment_id: UUID,
        result: PublishResult,
        message: str | None = None,
    ) -> bool:
        """Mark a building record successful with its published URLs."""
        async with self._lock(deployment_id):
            record = self.store.live(deployment_id)
            if record.status != DeploymentStatus.BUILDING:
                return False
            if message:
                await self.log_sink.append(record, message)
            record.url = result.url
            record.preview_url = result.preview_url
            await self._apply(record, DeploymentStatus.SUCCESS)
            return True

    async def fail(self, deployment_id: UUID, error: str) -> bool:
        """Mark a pending/building record failed with its cause."""
        async with self._lock(deployment_id):
            record = self.store.live(deployment_id)
            if not can_transition(record.status, DeploymentStatus.FAILED):
                return False
            await self.log_sink.append(record, error, LogLevel.ERROR)
            record.error = error
            await self._apply(record, DeploymentStatus.FAILED)
            return True

    async def cancel(self, deployment_id: UUID) -> DeploymentRecord:
        """Cancel a non-terminal record. A terminal record is returned unchanged."""
        async with self._lock(deployment_id):
            record = self.store.live(deployment_id)
            if record.is_terminal:
                self.logger.info(
                    "state_machine.cancel_ignored",
                    deployment_id=str(deployment_id),
                    status=record.status.value,
                )
                return record.model_copy(deep=True)
            await self.log_sink.append(record, "Deployment cancelled", LogLevel.WARN)
            await self._apply(record, DeploymentStatus.CANCELLED)
            return record.model_copy(deep=True)
