"""Pytest configuration and fixtures."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from sse_starlette.sse import AppStatus

from deploy_orchestrator.config import Settings
from deploy_orchestrator.core.orchestrator import DeploymentOrchestrator
from deploy_orchestrator.main import create_app
from deploy_orchestrator.models.deployment import Platform, PublishResult
from deploy_orchestrator.services.projects import ProjectDirectory
from deploy_orchestrator.services.publisher import PublishArtifact, SimulatedPublisher

OWNER_ID = "user-1"


class GatedPublisher(SimulatedPublisher):
    """Publisher that blocks inside ``publish`` until released."""

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def publish(
        self,
        platform: Platform,
        artifact: PublishArtifact,
        config: dict[str, Any],
    ) -> PublishResult:
        self.entered.set()
        await self.release.wait()
        return await super().publish(platform, artifact, config)


@pytest.fixture
def settings() -> Settings:
    """Settings with instant pipeline steps."""
    return Settings(
        pipeline_step_delay_seconds=0,
        rollback_step_delay_seconds=0,
        shutdown_grace_seconds=0,
        telemetry_available=True,
        publish_fail_platforms=[],
        project_owners={},
    )


@pytest.fixture
def publisher() -> SimulatedPublisher:
    """Publisher that rejects Netlify deployments."""
    return SimulatedPublisher(fail_platforms={Platform.NETLIFY})


@pytest.fixture
def gated_publisher() -> GatedPublisher:
    """Publisher that holds the pipeline in ``building`` until released."""
    return GatedPublisher()


@pytest.fixture
def orchestrator(settings: Settings, publisher: SimulatedPublisher) -> DeploymentOrchestrator:
    """Create a fresh orchestrator for tests."""
    return DeploymentOrchestrator.from_settings(settings, publisher=publisher)


@pytest.fixture
def gated_orchestrator(
    settings: Settings, gated_publisher: GatedPublisher
) -> DeploymentOrchestrator:
    """Orchestrator whose pipelines wait at the publish step."""
    return DeploymentOrchestrator.from_settings(settings, publisher=gated_publisher)


@pytest.fixture
def projects() -> ProjectDirectory:
    """Project directory owning p1 and p2."""
    return ProjectDirectory({"p1": OWNER_ID, "p2": "user-2"})


@asynccontextmanager
async def app_client(
    settings: Settings,
    orchestrator: DeploymentOrchestrator,
    projects: ProjectDirectory,
) -> AsyncIterator[AsyncClient]:
    """Async client for an app built around ``orchestrator``, as the owner of p1."""
    app = create_app(settings=settings, orchestrator=orchestrator, projects=projects)

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-User-ID": OWNER_ID},
    ) as ac:
        yield ac

    await orchestrator.shutdown(grace_seconds=1)


@pytest.fixture
async def client(
    settings: Settings,
    orchestrator: DeploymentOrchestrator,
    projects: ProjectDirectory,
) -> AsyncIterator[AsyncClient]:
    """Create an async test client authenticated as the owner of p1."""
    async with app_client(settings, orchestrator, projects) as ac:
        yield ac


@pytest.fixture
async def gated_client(
    settings: Settings,
    gated_orchestrator: DeploymentOrchestrator,
    gated_publisher: GatedPublisher,
    projects: ProjectDirectory,
) -> AsyncIterator[AsyncClient]:
    """Test client whose pipelines wait at the publish step."""
    async with app_client(settings, gated_orchestrator, projects) as ac:
        yield ac
        gated_publisher.release.set()


@pytest.fixture
def fresh_sse_exit_event() -> None:
    """Drop sse-starlette's process-wide exit event so it binds to this test's loop."""
    AppStatus.should_exit_event = None


@pytest.fixture
def deploy_config() -> dict[str, Any]:
    """A valid Cloudflare Pages configuration."""
    return {
        "platform": "cloudflare-pages",
        "build_command": "npm run build",
        "output_directory": "dist",
    }
