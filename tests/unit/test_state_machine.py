"""Unit tests for the deployment state machine."""

from uuid import uuid4

import pytest

from deploy_orchestrator.core.events import EventBus
from deploy_orchestrator.core.exceptions import InvalidStateError, NotFoundError
from deploy_orchestrator.core.logs import DeploymentLogSink
from deploy_orchestrator.core.state_machine import DeploymentStateMachine, can_transition
from deploy_orchestrator.core.store import DeploymentStore
from deploy_orchestrator.models.deployment import (
    DeploymentRecord,
    DeploymentStatus,
    LogLevel,
    Platform,
    PublishResult,
)

RESULT = PublishResult(url="https://p1.pages.dev", preview_url="https://abc.p1.pages.dev")


class TestTransitionTable:
    """Tests for the legal transition table."""

    @pytest.mark.parametrize(
        "current,target",
        [
            (DeploymentStatus.PENDING, DeploymentStatus.BUILDING),
            (DeploymentStatus.BUILDING, DeploymentStatus.SUCCESS),
            (DeploymentStatus.BUILDING, DeploymentStatus.FAILED),
            (DeploymentStatus.PENDING, DeploymentStatus.CANCELLED),
            (DeploymentStatus.BUILDING, DeploymentStatus.CANCELLED),
        ],
    )
    def test_allowed(self, current: DeploymentStatus, target: DeploymentStatus):
        assert can_transition(current, target)

    @pytest.mark.parametrize("terminal", [s for s in DeploymentStatus if s.is_terminal])
    def test_terminal_states_have_no_exits(self, terminal: DeploymentStatus):
        assert not any(can_transition(terminal, target) for target in DeploymentStatus)

    def test_pending_cannot_skip_to_success(self):
        assert not can_transition(DeploymentStatus.PENDING, DeploymentStatus.SUCCESS)


class TestDeploymentStateMachine:
    """Tests for DeploymentStateMachine."""

    @pytest.fixture
    def store(self) -> DeploymentStore:
        return DeploymentStore()

    @pytest.fixture
    def events(self) -> EventBus:
        return EventBus()

    @pytest.fixture
    def machine(self, store: DeploymentStore, events: EventBus) -> DeploymentStateMachine:
        return DeploymentStateMachine(store, DeploymentLogSink(events), events)

    @pytest.fixture
    async def record(self, store: DeploymentStore) -> DeploymentRecord:
        return await store.create(DeploymentRecord(project_id="p1", platform=Platform.VERCEL))

    @pytest.mark.asyncio
    async def test_begin_moves_to_building(
        self, machine: DeploymentStateMachine, store: DeploymentStore, record: DeploymentRecord
    ):
        assert await machine.begin(record.id, "Starting deployment process...") is True

        current = await store.get(record.id)
        assert current.status == DeploymentStatus.BUILDING
        assert [e.message for e in current.logs] == ["Starting deployment process..."]
        assert current.completed_at is None

    @pytest.mark.asyncio
    async def test_begin_twice_is_refused(
        self, machine: DeploymentStateMachine, record: DeploymentRecord
    ):
        await machine.begin(record.id, "start")
        assert await machine.begin(record.id, "start") is False

    @pytest.mark.asyncio
    async def test_succeed_sets_urls_and_completion(
        self, machine: DeploymentStateMachine, store: DeploymentStore, record: DeploymentRecord
    ):
        await machine.begin(record.id, "start")
        assert await machine.succeed(record.id, RESULT) is True

        current = await store.get(record.id)
        assert current.status == DeploymentStatus.SUCCESS
        assert current.url == RESULT.url
        assert current.preview_url == RESULT.preview_url
        assert current.error is None
        assert current.completed_at is not None

    @pytest.mark.asyncio
    async def test_succeed_requires_building(
        self, machine: DeploymentStateMachine, store: DeploymentStore, record: DeploymentRecord
    ):
        assert await machine.succeed(record.id, RESULT) is False
        assert (await store.get(record.id)).status == DeploymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_fail_sets_error(
        self, machine: DeploymentStateMachine, store: DeploymentStore, record: DeploymentRecord
    ):
        await machine.begin(record.id, "start")
        assert await machine.fail(record.id, "cloudflare: boom") is True

        current = await store.get(record.id)
        assert current.status == DeploymentStatus.FAILED
        assert current.error == "cloudflare: boom"
        assert current.url is None
        assert current.completed_at is not None
        assert current.logs[-1].level == LogLevel.ERROR

    @pytest.mark.asyncio
    async def test_cancel_building(
        self, machine: DeploymentStateMachine, record: DeploymentRecord
    ):
        await machine.begin(record.id, "start")
        cancelled = await machine.cancel(record.id)

        assert cancelled.status == DeploymentStatus.CANCELLED
        assert cancelled.completed_at is not None
        assert cancelled.url is None
        assert cancelled.error is None
        assert cancelled.logs[-1].level == LogLevel.WARN

    @pytest.mark.asyncio
    async def test_cancel_terminal_is_noop(
        self, machine: DeploymentStateMachine, store: DeploymentStore, record: DeploymentRecord
    ):
        await machine.begin(record.id, "start")
        await machine.succeed(record.id, RESULT)
        before = await store.get(record.id)

        after = await machine.cancel(record.id)

        assert after.model_dump() == before.model_dump()

    @pytest.mark.asyncio
    async def test_writes_after_cancel_are_ignored(
        self, machine: DeploymentStateMachine, store: DeploymentStore, record: DeploymentRecord
    ):
        await machine.begin(record.id, "start")
        await machine.cancel(record.id)
        before = await store.get(record.id)

        assert await machine.log_step(record.id, "Installing dependencies...") is False
        assert await machine.succeed(record.id, RESULT) is False
        assert await machine.fail(record.id, "late failure") is False

        assert (await store.get(record.id)).model_dump() == before.model_dump()

    @pytest.mark.asyncio
    async def test_apply_rejects_illegal_move(
        self, machine: DeploymentStateMachine, store: DeploymentStore, record: DeploymentRecord
    ):
        async with store.lock_for(record.id):
            with pytest.raises(InvalidStateError, match="pending to success"):
                await machine._apply(store.live(record.id), DeploymentStatus.SUCCESS)

        assert (await store.get(record.id)).status == DeploymentStatus.PENDING

    @pytest.mark.asyncio
    async def test_unknown_deployment(self, machine: DeploymentStateMachine):
        with pytest.raises(NotFoundError):
            await machine.cancel(uuid4())

    @pytest.mark.asyncio
    async def test_transitions_publish_events(
        self, machine: DeploymentStateMachine, events: EventBus, record: DeploymentRecord
    ):
        queue = events.subscribe(record.id)

        await machine.begin(record.id, "start")
        await machine.cancel(record.id)

        received = []
        while not queue.empty():
            received.append(queue.get_nowait())

        assert [(e.event_type, e.data.get("status")) for e in received] == [
            ("status", "building"),
            ("log", None),
            ("log", None),
            ("status", "cancelled"),
        ]
        assert received[-1].is_terminal
