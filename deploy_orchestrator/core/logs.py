"""Append-only deployment log sink."""

from deploy_orchestrator.core.events import EventBus
from deploy_orchestrator.models.deployment import DeploymentRecord, LogEntry, LogLevel


class DeploymentLogSink:
    """Appends log entries to deployment records.

    Entries are only ever appended, never edited or removed, so any earlier
    read of a record's logs is a prefix of any later read.
    """

    def __init__(self, events: EventBus | None = None):
        self.events = events

    async def append(
        self,
        record: DeploymentRecord,
        message: str,
        level: LogLevel = LogLevel.INFO,
    ) -> LogEntry:
        """Append an entry to a live record. Caller must hold the record lock."""
        entry = LogEntry(level=level, message=message)
        record.logs.append(entry)
        record.updated_at = entry.timestamp

        if self.events:
            await self.events.publish_log(record.id, entry)

        return entry

    @staticmethod
    def read(record: DeploymentRecord | None) -> list[LogEntry]:
        """Copy of a record's log sequence; empty for a missing record."""
        if record is None:
            return []
        return list(record.logs)
