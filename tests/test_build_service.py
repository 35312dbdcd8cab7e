"""
Tests for the BuildService facade.

Tests cover:
- submit returning before the build runs
- id assignment and duplicate detection
- listing and lookup
- admission control, isolation between builds and shutdown
"""
import asyncio
import itertools

import pytest

from buildkeeper.common.config.constants import BuildStatus, CANCELLED_REASON
from buildkeeper.common.dto.build import Command
from buildkeeper.common.exceptions.registry_exceptions import (
    BuildNotFoundError,
    DuplicateBuildError,
)
from buildkeeper.orchestrator.build_service import BuildService

from conftest import FakeContainerEngine, wait_for_build


class TestSubmit:
    """Tests for submitting builds."""

    @pytest.mark.asyncio
    async def test_submit_returns_pending_record(self, settings):
        """submit returns the pending record before the engine finishes."""
        gate = asyncio.Event()
        service = BuildService(FakeContainerEngine(start_gate=gate), settings=settings)

        build = await service.submit("alpine", "p1", [{"cmd": "make"}])

        assert build.status == BuildStatus.PENDING
        assert build.done is False
        assert build.address == ""
        assert build.logs == []
        assert build.tasks == [Command(cmd="make")]
        assert service.get_active_builds() == [build.id]

        gate.set()
        await service.wait_idle()

        stored = await service.get_by_id(build.id)
        assert stored.done is True
        assert stored.tasks == [Command(cmd="make")]
        assert service.get_active_builds() == []

    @pytest.mark.asyncio
    async def test_each_submit_gets_a_distinct_id(self, fake_engine, settings):
        service = BuildService(fake_engine, settings=settings)

        submitted = [await service.submit("alpine", "p1") for _ in range(20)]
        await service.wait_idle()

        ids = [b.id for b in submitted]
        assert len(set(ids)) == 20
        assert [b.id for b in await service.list_all()] == ids

    @pytest.mark.asyncio
    async def test_custom_id_factory(self, fake_engine, settings):
        counter = itertools.count(1)
        service = BuildService(fake_engine, settings=settings, id_factory=lambda: f"build-{next(counter)}")

        first = await service.submit("alpine", "p1")
        second = await service.submit("alpine", "p1")
        await service.wait_idle()

        assert (first.id, second.id) == ("build-1", "build-2")

    @pytest.mark.asyncio
    async def test_duplicate_id_is_rejected(self, fake_engine, settings):
        """A repeated id fails loudly and does not start a second build."""
        service = BuildService(fake_engine, settings=settings, id_factory=lambda: "fixed")

        await service.submit("alpine", "p1")
        with pytest.raises(DuplicateBuildError):
            await service.submit("busybox", "p2")
        await service.wait_idle()

        builds = await service.list_all()
        assert len(builds) == 1
        assert builds[0].image_reference == "alpine"
        assert ("pull", "busybox") not in fake_engine.calls

    @pytest.mark.asyncio
    async def test_submitted_build_completes(self, fake_engine, settings):
        service = BuildService(fake_engine, settings=settings)

        build = await service.submit("alpine", "p1")
        stored = await wait_for_build(service.registry, build.id)

        assert stored.done is True
        assert stored.address == "172.17.0.2"
        assert stored.logs == ["Pulling..."]


class TestQueries:
    """Tests for listing and looking up builds."""

    @pytest.mark.asyncio
    async def test_list_by_project(self, fake_engine, settings):
        service = BuildService(fake_engine, settings=settings)

        a = await service.submit("alpine", "p1")
        await service.submit("alpine", "p2")
        c = await service.submit("busybox", "p1")
        await service.wait_idle()

        assert [b.id for b in await service.list_by_project("p1")] == [a.id, c.id]
        assert await service.list_by_project("p9") == []

    @pytest.mark.asyncio
    async def test_get_unknown_build(self, fake_engine, settings):
        service = BuildService(fake_engine, settings=settings)

        with pytest.raises(BuildNotFoundError):
            await service.get_by_id("does-not-exist")

    @pytest.mark.asyncio
    async def test_get_status(self, settings):
        engine = FakeContainerEngine(rejected_images=["bad"])
        service = BuildService(engine, settings=settings)

        await service.submit("alpine", "p1")
        await service.submit("bad", "p1")
        await service.wait_idle()

        status = await service.get_status()

        assert status == {
            "total_builds": 2,
            "active_builds": 0,
            "max_concurrent_builds": 10,
            "builds_by_status": {"done": 1, "failed": 1},
        }


class TestConcurrency:
    """Tests for many builds running at once."""

    @pytest.mark.asyncio
    async def test_many_concurrent_builds(self, settings):
        """Fifty overlapping builds each finish with their own logs and address."""
        engine = FakeContainerEngine(address=None, jitter=0.002)
        service = BuildService(engine, settings=settings)

        submitted = await asyncio.gather(
            *(service.submit("alpine", f"p{i % 5}") for i in range(50))
        )
        await asyncio.wait_for(service.wait_idle(), timeout=10.0)

        builds = await service.list_all()
        assert len(builds) == 50
        assert {b.id for b in builds} == {b.id for b in submitted}
        assert all(b.done for b in builds)
        assert all(b.logs == ["Pulling..."] for b in builds)
        assert len({b.address for b in builds}) == 50

        for project in range(5):
            project_builds = await service.list_by_project(f"p{project}")
            assert len(project_builds) == 10

    @pytest.mark.asyncio
    async def test_admission_limit(self, settings):
        """Only max_concurrent_builds builds talk to the engine at once."""
        gate = asyncio.Event()
        engine = FakeContainerEngine(start_gate=gate)
        service = BuildService(engine, settings=settings.model_copy(update={"max_concurrent_builds": 2}))

        for _ in range(5):
            await service.submit("alpine", "p1")
        await asyncio.sleep(0.05)

        assert await service.registry.count_by_status() == {"starting": 2, "pending": 3}
        assert [call[0] for call in engine.calls].count("pull") == 2

        gate.set()
        await asyncio.wait_for(service.wait_idle(), timeout=5.0)

        assert await service.registry.count_by_status() == {"done": 5}

    @pytest.mark.asyncio
    async def test_failure_does_not_affect_other_builds(self, settings):
        engine = FakeContainerEngine(rejected_images=["bad"])
        service = BuildService(engine, settings=settings)

        good = await service.submit("alpine", "p1")
        bad = await service.submit("bad", "p1")
        other = await service.submit("alpine", "p2")
        await service.wait_idle()

        assert (await service.get_by_id(good.id)).done is True
        assert (await service.get_by_id(other.id)).done is True
        failed = await service.get_by_id(bad.id)
        assert failed.status == BuildStatus.FAILED
        assert failed.done is False
        assert failed.logs == ["Build failed while pulling: Image not found: bad"]


class TestShutdown:
    """Tests for stopping the service."""

    @pytest.mark.asyncio
    async def test_stop_cancels_running_builds(self, settings):
        """Builds still in flight at shutdown end up failed and the engine is closed."""
        engine = FakeContainerEngine(start_gate=asyncio.Event())
        service = BuildService(engine, settings=settings)

        ids = [(await service.submit("alpine", "p1")).id for _ in range(3)]
        for build_id in ids:
            await wait_for_build(service.registry, build_id, lambda b: b.status == BuildStatus.STARTING)

        await service.stop()

        assert engine.closed is True
        for build_id in ids:
            build = await service.get_by_id(build_id)
            assert build.status == BuildStatus.FAILED
            assert build.done is False
            assert build.logs[-1] == CANCELLED_REASON

    @pytest.mark.asyncio
    async def test_stop_fails_builds_waiting_for_admission(self, settings):
        """Builds still queued behind the admission limit do not stay pending forever."""
        engine = FakeContainerEngine(start_gate=asyncio.Event())
        service = BuildService(engine, settings=settings.model_copy(update={"max_concurrent_builds": 1}))

        running = await service.submit("alpine", "p1")
        queued = [await service.submit("alpine", "p1") for _ in range(2)]
        await wait_for_build(service.registry, running.id, lambda b: b.status == BuildStatus.STARTING)

        await service.stop()

        assert (await service.get_by_id(running.id)).logs == ["Pulling...", CANCELLED_REASON]
        for build in queued:
            stored = await service.get_by_id(build.id)
            assert stored.status == BuildStatus.FAILED
            assert stored.logs == [CANCELLED_REASON]

    @pytest.mark.asyncio
    async def test_stop_with_no_builds(self, fake_engine, settings):
        service = BuildService(fake_engine, settings=settings)

        await service.stop()

        assert fake_engine.closed is True
