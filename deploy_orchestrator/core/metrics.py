"""Metrics reporting for live deployments."""

from datetime import datetime

from deploy_orchestrator.core.exceptions import ExternalServiceError
from deploy_orchestrator.models.deployment import DeploymentRecord, utcnow
from deploy_orchestrator.models.metrics import (
    DeploymentMetrics,
    MetricsBucket,
    TelemetrySample,
    TimeRange,
)
from deploy_orchestrator.services.telemetry import TelemetrySource
from deploy_orchestrator.utils.logging import get_logger


def bucket_starts(time_range: TimeRange, now: datetime | None = None) -> list[datetime]:
    """Start times of the timeline buckets, oldest first.

    The newest bucket is the one containing ``now``.
    """
    now = now or utcnow()
    width = time_range.bucket_width
    count = time_range.bucket_count
    return [now - width * (count - 1 - i) for i in range(count)]


class MetricsReporter:
    """Read-only facade over the telemetry source."""

    def __init__(self, telemetry: TelemetrySource):
        self.telemetry = telemetry
        self.logger = get_logger("metrics")

    async def report(
        self,
        project_id: str,
        time_range: TimeRange,
        target: DeploymentRecord | None,
        now: datetime | None = None,
    ) -> DeploymentMetrics:
        """Summarize traffic for ``target`` over ``time_range``.

        Without a live target the report is all zeros.

        Raises:
            ExternalServiceError: If the telemetry source fails
        """
        starts = bucket_starts(time_range, now)

        if target is None or not target.url:
            return DeploymentMetrics(
                time_range=time_range,
                timeline=[MetricsBucket(timestamp=start) for start in starts],
            )

        try:
            samples = await self.telemetry.fetch(target.url, starts)
        except ExternalServiceError:
            self.logger.error(
                "metrics.telemetry_failed",
                project_id=project_id,
                deployment_id=str(target.id),
            )
            raise
        except Exception as e:
            self.logger.error(
                "metrics.telemetry_failed",
                project_id=project_id,
                deployment_id=str(target.id),
                error=str(e),
            )
            raise ExternalServiceError("telemetry", str(e)) from e

        if len(samples) != len(starts):
            raise ExternalServiceError(
                "telemetry",
                f"Expected {len(starts)} samples, got {len(samples)}",
            )

        return self._aggregate(time_range, target, samples)

    @staticmethod
    def _aggregate(
        time_range: TimeRange,
        target: DeploymentRecord,
        samples: list[TelemetrySample],
    ) -> DeploymentMetrics:
        requests = sum(s.requests for s in samples)
        weighted_time = sum(s.response_time * s.requests for s in samples)

        return DeploymentMetrics(
            time_range=time_range,
            deployment_id=target.id,
            url=target.url,
            requests=requests,
            bandwidth=sum(s.bandwidth for s in samples),
            errors=sum(s.errors for s in samples),
            response_time=round(weighted_time / requests, 2) if requests else 0.0,
            uptime=sum(s.uptime for s in samples) / len(samples) if samples else 0.0,
            timeline=[
                MetricsBucket(
                    timestamp=s.timestamp,
                    requests=s.requests,
                    bandwidth=s.bandwidth,
                    errors=s.errors,
                    response_time=s.response_time,
                )
                for s in samples
            ],
        )
