"""Tests for PermissionBroker: exactly-once resolution, timeouts, events."""

import asyncio
import random

import pytest

from agentgate.exceptions import ValidationError
from agentgate.permission.broker import CANCELLED_REASON, NOT_FOUND_MESSAGE, PermissionBroker
from agentgate.permission.events import EventBus
from agentgate.permission.schema import PermissionEvent, PermissionEventType, PermissionStatus


async def _wait_pending(broker: PermissionBroker, count: int = 1) -> list:
    for _ in range(200):
        pending = broker.list_pending()
        if len(pending) >= count:
            return pending
        await asyncio.sleep(0.001)
    raise AssertionError(f"expected {count} pending requests")


@pytest.fixture
def events() -> list[PermissionEvent]:
    return []


@pytest.fixture
def broker(events) -> PermissionBroker:
    bus = EventBus()
    bus.subscribe(events.append)
    return PermissionBroker(bus=bus, timeout=5)


class TestSubmitResolve:
    @pytest.mark.asyncio
    async def test_approve_with_default_reason(self, broker, events):
        task = asyncio.create_task(broker.submit("Write", "Write /tmp/x", resource="/tmp/x"))
        [request] = await _wait_pending(broker)

        result = broker.resolve(request.id, True)
        outcome = await task

        assert result.success is True
        assert result.message == "Permission approved"
        assert outcome.approved is True
        assert outcome.reason == "Approved by user"
        assert broker.list_pending() == []
        assert [e.type for e in events] == [
            PermissionEventType.REQUEST_CREATED,
            PermissionEventType.REQUEST_RESOLVED,
        ]
        assert events[1].response.status == PermissionStatus.APPROVED

    @pytest.mark.asyncio
    async def test_deny_with_custom_reason(self, broker, events):
        task = asyncio.create_task(broker.submit("Bash", "Run rm -rf /"))
        [request] = await _wait_pending(broker)

        broker.resolve(request.id, False, "too dangerous")
        outcome = await task

        assert outcome.approved is False
        assert outcome.reason == "too dangerous"
        assert events[-1].response.status == PermissionStatus.DENIED
        assert events[-1].response.reason == "too dangerous"

    @pytest.mark.asyncio
    async def test_deny_default_reason(self, broker):
        task = asyncio.create_task(broker.submit("Bash", "Run ls"))
        [request] = await _wait_pending(broker)

        broker.resolve(request.id, False)

        assert (await task).reason == "Denied by user"

    @pytest.mark.asyncio
    async def test_second_resolve_fails_and_changes_nothing(self, broker, events):
        task = asyncio.create_task(broker.submit("Write", "Write a file"))
        [request] = await _wait_pending(broker)

        first = broker.resolve(request.id, True)
        second = broker.resolve(request.id, False, "changed my mind")
        outcome = await task

        assert first.success is True
        assert second.success is False
        assert second.error == NOT_FOUND_MESSAGE
        assert outcome.approved is True
        assert len([e for e in events if e.type == PermissionEventType.REQUEST_RESOLVED]) == 1

    def test_resolve_unknown_id(self, broker, events):
        result = broker.resolve("does-not-exist", True)

        assert result.success is False
        assert result.error == NOT_FOUND_MESSAGE
        assert events == []

    @pytest.mark.asyncio
    async def test_resolve_from_worker_thread(self, broker):
        task = asyncio.create_task(broker.submit("Edit", "Edit main.py"))
        [request] = await _wait_pending(broker)

        result = await asyncio.to_thread(broker.resolve, request.id, True)

        assert result.success is True
        assert (await task).approved is True


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "action, description",
        [(None, "desc"), ("Write", None), ("", "desc"), ("Write", "")],
    )
    async def test_missing_fields_rejected_without_side_effects(
        self, broker, events, action, description
    ):
        with pytest.raises(ValidationError, match="Action and description are required"):
            await broker.submit(action, description)

        assert broker.list_pending() == []
        assert events == []


class TestTimeout:
    @pytest.mark.asyncio
    async def test_timeout_denies_and_publishes(self, events):
        bus = EventBus()
        bus.subscribe(events.append)
        broker = PermissionBroker(bus=bus, timeout=0.05)

        outcome = await broker.submit("Write", "Write a file")

        assert outcome.approved is False
        assert outcome.reason == "Request timed out after 0.05 seconds"
        assert broker.list_pending() == []
        assert events[-1].type == PermissionEventType.REQUEST_RESOLVED
        assert events[-1].response.status == PermissionStatus.TIMED_OUT

    def test_default_timeout_reason(self):
        broker = PermissionBroker(timeout=60)
        assert broker.timeout_reason == "Request timed out after 60 seconds"

    @pytest.mark.asyncio
    async def test_resolve_after_timeout_fails(self):
        broker = PermissionBroker(timeout=0.05)
        task = asyncio.create_task(broker.submit("Write", "Write a file"))
        [request] = await _wait_pending(broker)
        await task

        assert broker.resolve(request.id, True).success is False

    @pytest.mark.asyncio
    async def test_resolve_racing_timeout_settles_once(self):
        rng = random.Random(1234)
        for _ in range(25):
            events: list[PermissionEvent] = []
            bus = EventBus()
            bus.subscribe(events.append)
            broker = PermissionBroker(bus=bus, timeout=0.01)

            task = asyncio.create_task(broker.submit("Write", "Write a file"))
            [request] = await _wait_pending(broker)
            await asyncio.sleep(rng.uniform(0, 0.02))
            result = broker.resolve(request.id, True)
            outcome = await task

            resolved = [e for e in events if e.type == PermissionEventType.REQUEST_RESOLVED]
            assert len(resolved) == 1
            if result.success:
                assert outcome.approved is True
                assert resolved[0].response.status == PermissionStatus.APPROVED
            else:
                assert outcome.approved is False
                assert resolved[0].response.status == PermissionStatus.TIMED_OUT
            assert broker.list_pending() == []


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_caller_removes_request(self, broker, events):
        task = asyncio.create_task(broker.submit("Write", "Write a file"))
        [request] = await _wait_pending(broker)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert broker.list_pending() == []
        assert events[-1].response.reason == CANCELLED_REASON
        assert broker.resolve(request.id, True).success is False


class TestPendingAndWatch:
    @pytest.mark.asyncio
    async def test_list_pending_insertion_order(self, broker):
        tasks = []
        for name in ("first", "second", "third"):
            tasks.append(asyncio.create_task(broker.submit("Write", name)))
            await _wait_pending(broker, len(tasks))

        pending = broker.list_pending()
        assert [r.description for r in pending] == ["first", "second", "third"]

        for request in pending:
            broker.resolve(request.id, False)
        await asyncio.gather(*tasks)

    @pytest.mark.asyncio
    async def test_watch_snapshot_then_live_only(self, broker):
        tasks = [asyncio.create_task(broker.submit("Write", f"file {i}")) for i in range(3)]
        await _wait_pending(broker, 3)

        live: list[PermissionEvent] = []
        snapshot, subscription = broker.watch(live.append)
        assert len(snapshot) == 3
        assert live == []

        broker.resolve(snapshot[0].id, True)
        tasks.append(asyncio.create_task(broker.submit("Bash", "Run ls")))
        await _wait_pending(broker, 3)

        assert [e.type for e in live] == [
            PermissionEventType.REQUEST_RESOLVED,
            PermissionEventType.REQUEST_CREATED,
        ]

        subscription.unsubscribe()
        for request in broker.list_pending():
            broker.resolve(request.id, False)
        await asyncio.gather(*tasks)

    def test_watch_on_snapshot_runs_before_subscribe(self, broker):
        seen = []
        broker.watch(lambda event: None, on_snapshot=seen.append)
        assert seen == [[]]
