"""Publish backend used by the pipeline's publish step."""

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from deploy_orchestrator.core.exceptions import ExternalServiceError
from deploy_orchestrator.models.deployment import PLATFORM_CATALOG, Platform, PublishResult
from deploy_orchestrator.utils.logging import get_logger


class PublishArtifact(BaseModel):
    """Reference to the build output handed to the publish backend."""

    project_id: str
    deployment_id: UUID
    output_directory: str = "dist"


class PublishBackend(ABC):
    """Publishes build artifacts to a hosting platform."""

    def __init__(self):
        self.logger = get_logger(f"publisher.{self.name}")

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""
        pass

    @abstractmethod
    async def publish(
        self,
        platform: Platform,
        artifact: PublishArtifact,
        config: dict[str, Any],
    ) -> PublishResult:
        """Publish an artifact and return its URLs.

        Raises:
            ExternalServiceError: If the platform rejects the publish
        """
        pass


def _slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "project"


class SimulatedPublisher(PublishBackend):
    """Publisher that fakes the hosting platform.

    The production URL is stable per project so a rollback lands on the same
    address; the preview URL is unique per deployment.
    """

    def __init__(
        self,
        delay_seconds: float = 0.0,
        fail_platforms: set[Platform] | None = None,
    ):
        super().__init__()
        self.delay_seconds = delay_seconds
        self.fail_platforms = fail_platforms or set()

    @property
    def name(self) -> str:
        return "simulated"

    async def publish(
        self,
        platform: Platform,
        artifact: PublishArtifact,
        config: dict[str, Any],
    ) -> PublishResult:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        if platform in self.fail_platforms:
            self.logger.warning(
                "publisher.rejected",
                platform=platform.value,
                deployment_id=str(artifact.deployment_id),
            )
            raise ExternalServiceError(
                PLATFORM_CATALOG[platform].name, "Failed to deploy project"
            )

        domain = PLATFORM_CATALOG[platform].domain
        slug = _slugify(artifact.project_id)
        result = PublishResult(
            url=f"https://{slug}.{domain}",
            preview_url=f"https://{artifact.deployment_id.hex[:8]}.{slug}.{domain}",
        )

        self.logger.info(
            "publisher.published",
            platform=platform.value,
            deployment_id=str(artifact.deployment_id),
            url=result.url,
        )
        return result
