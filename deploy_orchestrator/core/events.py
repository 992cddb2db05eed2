"""Event system for Server-Sent Events (SSE)."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from deploy_orchestrator.models.deployment import DeploymentStatus, LogEntry, utcnow


@dataclass
class Event:
    """An SSE event."""

    event_type: str
    data: dict[str, Any]
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        """True for a status event announcing a terminal state."""
        if self.event_type != "status":
            return False
        return DeploymentStatus(self.data["status"]).is_terminal

    def to_sse(self) -> dict[str, str]:
        """Convert to an SSE message for ``EventSourceResponse``."""
        return {
            "event": self.event_type,
            "data": json.dumps({**self.data, "timestamp": self.timestamp.isoformat()}),
        }


class EventBus:
    """Fan-out event bus for deployment events."""

    def __init__(self):
        self._subscribers: dict[UUID, list[asyncio.Queue[Event]]] = {}

    def subscribe(self, deployment_id: UUID) -> asyncio.Queue[Event]:
        """Subscribe to events for a deployment."""
        queue: asyncio.Queue[Event] = asyncio.Queue()
        self._subscribers.setdefault(deployment_id, []).append(queue)
        return queue

    def unsubscribe(self, deployment_id: UUID, queue: asyncio.Queue[Event]) -> None:
        """Drop one subscription."""
        queues = self._subscribers.get(deployment_id, [])
        if queue in queues:
            queues.remove(queue)
        if not queues:
            self._subscribers.pop(deployment_id, None)

    def subscriber_count(self, deployment_id: UUID) -> int:
        return len(self._subscribers.get(deployment_id, []))

    async def publish(self, deployment_id: UUID, event: Event) -> None:
        """Publish an event for a deployment."""
        for queue in self._subscribers.get(deployment_id, []):
            await queue.put(event)

    async def publish_status(
        self,
        deployment_id: UUID,
        status: DeploymentStatus,
        previous: DeploymentStatus | None = None,
    ) -> None:
        """Publish a status transition event."""
        await self.publish(
            deployment_id,
            Event(
                event_type="status",
                data={
                    "deployment_id": str(deployment_id),
                    "status": status.value,
                    "previous": previous.value if previous else None,
                },
            ),
        )

    async def publish_log(self, deployment_id: UUID, entry: LogEntry) -> None:
        """Publish an appended log entry."""
        await self.publish(
            deployment_id,
            Event(
                event_type="log",
                data={
                    "deployment_id": str(deployment_id),
                    "level": entry.level.value,
                    "message": entry.message,
                },
                timestamp=entry.timestamp,
            ),
        )
