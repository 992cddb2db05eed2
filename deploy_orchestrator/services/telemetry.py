"""Telemetry source feeding the metrics reporter."""

import random
from abc import ABC, abstractmethod
from datetime import datetime

from deploy_orchestrator.core.exceptions import ExternalServiceError
from deploy_orchestrator.models.metrics import TelemetrySample


class TelemetrySource(ABC):
    """Supplies raw traffic counters for a live deployment."""

    @abstractmethod
    async def fetch(self, target: str, buckets: list[datetime]) -> list[TelemetrySample]:
        """Return one sample per bucket start, in the same order.

        Raises:
            ExternalServiceError: If telemetry cannot be retrieved
        """
        pass


class SimulatedTelemetrySource(TelemetrySource):
    """Deterministic pseudo-random traffic, seeded by target URL and bucket."""

    def __init__(self, available: bool = True):
        self.available = available

    async def fetch(self, target: str, buckets: list[datetime]) -> list[TelemetrySample]:
        if not self.available:
            raise ExternalServiceError("telemetry", "Metrics source unavailable")

        samples = []
        for start in buckets:
            rng = random.Random(f"{target}|{start.isoformat()}")
            requests = rng.randint(0, 100)
            samples.append(
                TelemetrySample(
                    timestamp=start,
                    requests=requests,
                    bandwidth=requests * rng.randint(10_000, 250_000),
                    errors=rng.randint(0, min(5, requests)),
                    response_time=float(rng.randint(100, 300)),
                    uptime=0.98 + rng.random() * 0.02,
                )
            )
        return samples
