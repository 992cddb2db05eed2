"""Supervised background tasks for pipeline runs."""

import asyncio
from typing import Coroutine
from uuid import UUID

from deploy_orchestrator.core.exceptions import InvalidStateError
from deploy_orchestrator.utils.logging import get_logger


class DeploymentTaskPool:
    """Owns one asyncio task per running pipeline.

    Callers never await these tasks; the pool keeps a reference so runs are
    not garbage collected mid-flight and can be drained on shutdown.
    """

    def __init__(self):
        self._tasks: dict[UUID, asyncio.Task[None]] = {}
        self.logger = get_logger("tasks")

    def spawn(self, deployment_id: UUID, coro: Coroutine[None, None, None]) -> asyncio.Task[None]:
        """Start a pipeline run in the background."""
        if deployment_id in self._tasks:
            coro.close()
            raise InvalidStateError(
                f"Pipeline already running for deployment: {deployment_id}",
                {"deployment_id": str(deployment_id)},
            )

        task = asyncio.create_task(coro, name=f"deployment-{deployment_id}")
        self._tasks[deployment_id] = task
        task.add_done_callback(lambda t: self._on_done(deployment_id, t))
        return task

    def _on_done(self, deployment_id: UUID, task: asyncio.Task[None]) -> None:
        self._tasks.pop(deployment_id, None)
        if task.cancelled():
            self.logger.warning("tasks.cancelled", deployment_id=str(deployment_id))
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error(
                "tasks.crashed",
                deployment_id=str(deployment_id),
                error=str(exc),
                exc_info=exc,
            )

    @property
    def active(self) -> list[UUID]:
        """Deployments with a run in flight."""
        return list(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    async def wait(self, deployment_id: UUID, timeout: float | None = None) -> None:
        """Wait for a run to finish. Returns at once if none is in flight."""
        task = self._tasks.get(deployment_id)
        if task is None:
            return
        await asyncio.wait_for(asyncio.shield(task), timeout=timeout)

    async def wait_all(self, timeout: float | None = None) -> None:
        """Wait for every in-flight run."""
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.wait(tasks, timeout=timeout)

    async def shutdown(self, grace_seconds: float = 10.0) -> None:
        """Let runs finish within the grace period, then cancel the rest."""
        tasks = list(self._tasks.values())
        if not tasks:
            return

        self.logger.info("tasks.draining", count=len(tasks), grace_seconds=grace_seconds)
        _, pending = await asyncio.wait(tasks, timeout=grace_seconds)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            self.logger.warning("tasks.abandoned", count=len(pending))
