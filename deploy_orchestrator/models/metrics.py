"""Deployment metrics models."""

from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class TimeRange(str, Enum):
    """Reporting window for deployment metrics."""

    HOUR = "1h"
    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"

    @property
    def bucket_count(self) -> int:
        return _BUCKET_LAYOUT[self][0]

    @property
    def bucket_width(self) -> timedelta:
        return _BUCKET_LAYOUT[self][1]


_BUCKET_LAYOUT: dict[TimeRange, tuple[int, timedelta]] = {
    TimeRange.HOUR: (12, timedelta(minutes=5)),
    TimeRange.DAY: (24, timedelta(hours=1)),
    TimeRange.WEEK: (28, timedelta(hours=6)),
    TimeRange.MONTH: (30, timedelta(days=1)),
}


class TelemetrySample(BaseModel):
    """Raw counters for one bucket, as supplied by the telemetry source."""

    timestamp: datetime
    requests: int = Field(default=0, ge=0)
    bandwidth: int = Field(default=0, ge=0)
    errors: int = Field(default=0, ge=0)
    response_time: float = Field(default=0.0, ge=0)
    uptime: float = Field(default=1.0, ge=0, le=1)


class MetricsBucket(BaseModel):
    """One timeline entry of a metrics report."""

    timestamp: datetime
    requests: int = 0
    bandwidth: int = 0
    errors: int = 0
    response_time: float = 0.0


class DeploymentMetrics(BaseModel):
    """Aggregated usage for a project's live deployment."""

    time_range: TimeRange
    deployment_id: UUID | None = None
    url: str | None = None

    requests: int = 0
    bandwidth: int = 0
    errors: int = 0
    response_time: float = 0.0
    uptime: float = 0.0

    timeline: list[MetricsBucket] = Field(default_factory=list)
