"""Deployment record storage."""

import asyncio
from uuid import UUID

from deploy_orchestrator.models.deployment import DeploymentRecord, DeploymentStatus


class DeploymentStore:
    """Keeps deployment records in memory.

    Reads hand out deep copies; only the state machine touches the live
    records, through ``live()`` while holding ``lock_for()``.

    Note: For production, this should be backed by a database.
    """

    def __init__(self):
        self._records: dict[UUID, DeploymentRecord] = {}
        self._by_project: dict[str, list[UUID]] = {}
        self._locks: dict[UUID, asyncio.Lock] = {}

    async def create(self, record: DeploymentRecord) -> DeploymentRecord:
        """Store a new record."""
        if record.id in self._records:
            raise ValueError(f"Deployment already exists: {record.id}")
        self._records[record.id] = record
        self._locks[record.id] = asyncio.Lock()
        # Creation order, independent of timestamp resolution
        self._by_project.setdefault(record.project_id, []).append(record.id)
        return record.model_copy(deep=True)

    async def get(self, deployment_id: UUID) -> DeploymentRecord | None:
        """Get a snapshot of a record by ID."""
        record = self._records.get(deployment_id)
        return record.model_copy(deep=True) if record else None

    async def get_for_project(
        self, project_id: str, deployment_id: UUID
    ) -> DeploymentRecord | None:
        """Get a record only if it belongs to the project."""
        record = await self.get(deployment_id)
        if record is None or record.project_id != project_id:
            return None
        return record

    async def latest(self, project_id: str) -> DeploymentRecord | None:
        """Get the most recently created record for a project."""
        ids = self._by_project.get(project_id)
        if not ids:
            return None
        return await self.get(ids[-1])

    async def latest_successful(self, project_id: str) -> DeploymentRecord | None:
        """Get the most recent record that reached ``success``."""
        for deployment_id in reversed(self._by_project.get(project_id, [])):
            if self._records[deployment_id].status == DeploymentStatus.SUCCESS:
                return await self.get(deployment_id)
        return None

    async def history(self, project_id: str, limit: int = 10) -> list[DeploymentRecord]:
        """List up to ``limit`` records, newest first."""
        ids = self._by_project.get(project_id, [])
        newest_first = list(reversed(ids))[:limit]
        return [self._records[i].model_copy(deep=True) for i in newest_first]

    def live(self, deployment_id: UUID) -> DeploymentRecord:
        """Mutable record for the state machine. Caller must hold the lock."""
        return self._records[deployment_id]

    def lock_for(self, deployment_id: UUID) -> asyncio.Lock:
        """Per-record transition lock."""
        return self._locks[deployment_id]

    def __contains__(self, deployment_id: object) -> bool:
        return deployment_id in self._records
