"""
Pytest configuration and fixtures for the build service tests.

Provides a FakeContainerEngine whose pull output, failures and completion
timing are controlled by the test, plus helpers for waiting on builds.
"""
import asyncio
import random
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pytest

from buildkeeper.builder.container_engine import ContainerEngine, ContainerInspection
from buildkeeper.common.config.settings import Settings
from buildkeeper.common.dto.build import BuildRecord
from buildkeeper.common.exceptions.engine_exceptions import ImageNotFoundError
from buildkeeper.orchestrator.build_registry import BuildRegistry


class FakeContainerEngine(ContainerEngine):
    """In-memory container engine with controllable behaviour."""

    def __init__(
        self,
        pull_lines: Optional[Sequence[bytes]] = None,
        address: Optional[str] = "172.17.0.2",
        rejected_images: Sequence[str] = (),
        failures: Optional[Dict[str, Exception]] = None,
        start_gate: Optional[asyncio.Event] = None,
        pull_gate: Optional[asyncio.Event] = None,
        jitter: float = 0.0,
        running: bool = True,
    ):
        self.pull_lines = list(pull_lines) if pull_lines is not None else [b"Pulling...\n"]
        self.address = address
        self.rejected_images = set(rejected_images)
        self.failures = failures or {}
        self.start_gate = start_gate
        self.pull_gate = pull_gate
        self.jitter = jitter
        self.running = running
        self.calls: List[Tuple[str, str]] = []
        self.closed = False
        self._containers: Dict[str, str] = {}

    async def _pause(self) -> None:
        if self.jitter:
            await asyncio.sleep(random.uniform(0, self.jitter))
        else:
            await asyncio.sleep(0)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failures:
            raise self.failures[operation]

    async def pull_image(self, reference: str):
        self.calls.append(("pull", reference))
        await self._pause()
        if reference in self.rejected_images:
            raise ImageNotFoundError(reference)
        self._maybe_fail("pull")
        return self._stream()

    async def _stream(self):
        for line in self.pull_lines:
            await self._pause()
            yield line
        if self.pull_gate is not None:
            await self.pull_gate.wait()
        self._maybe_fail("pull_stream")

    async def create_container(self, reference: str) -> str:
        self.calls.append(("create", reference))
        await self._pause()
        self._maybe_fail("create")
        container_id = f"container-{len(self._containers) + 1:04d}"
        self._containers[container_id] = reference
        return container_id

    async def start_container(self, container_id: str) -> None:
        self.calls.append(("start", container_id))
        await self._pause()
        if self.start_gate is not None:
            await self.start_gate.wait()
        self._maybe_fail("start")

    async def inspect_container(self, container_id: str) -> ContainerInspection:
        self.calls.append(("inspect", container_id))
        await self._pause()
        self._maybe_fail("inspect")
        if self.address is not None:
            address = self.address
        else:
            number = int(container_id.split("-")[1])
            address = f"10.0.{number // 250}.{number % 250 + 1}"
        return ContainerInspection(container_id=container_id, network_address=address, running=self.running)

    async def close(self) -> None:
        self.closed = True


async def wait_for_build(
    registry: BuildRegistry,
    build_id: str,
    predicate: Callable[[BuildRecord], bool] = lambda b: b.is_terminal,
    timeout: float = 2.0,
) -> BuildRecord:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        build = await registry.snapshot_by_id(build_id)
        if predicate(build):
            return build
        if loop.time() > deadline:
            raise AssertionError(f"Build {build_id} did not reach expected state: {build!r}")
        await asyncio.sleep(0.005)


@pytest.fixture
def settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        max_concurrent_builds=10,
        engine_call_timeout_seconds=2.0,
        pull_timeout_seconds=2.0,
        await_pull_before_create=True,
        relay_queue_size=100,
    )


@pytest.fixture
def fake_engine():
    return FakeContainerEngine()


@pytest.fixture
def registry():
    return BuildRegistry()


def make_record(build_id: str = "build-1", project_id: str = "p1", image: str = "alpine") -> BuildRecord:
    return BuildRecord(id=build_id, project_id=project_id, image_reference=image)
