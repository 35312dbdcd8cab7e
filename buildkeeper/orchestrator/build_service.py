from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from uuid import uuid4
import asyncio

from buildkeeper.builder.build_executor import BuildExecutor
from buildkeeper.builder.container_engine import ContainerEngine
from buildkeeper.orchestrator.build_registry import BuildRegistry
from buildkeeper.common.dto.build import BuildRecord, Command
from buildkeeper.common.config.constants import CANCELLED_REASON
from buildkeeper.common.config.settings import Settings, get_settings
from buildkeeper.common.config.logging_config import get_logger


logger = get_logger(__name__)


def _new_build_id() -> str:
    return str(uuid4())


class BuildService:
    """Entry point for submitting and querying builds.

    ``submit`` returns as soon as the pending record is registered; the build
    itself runs as a background task. At most ``max_concurrent_builds`` builds
    talk to the engine at once, the rest wait in ``pending``.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        registry: Optional[BuildRegistry] = None,
        settings: Optional[Settings] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._settings = settings or get_settings()
        self._engine = engine
        self._registry = registry or BuildRegistry()
        self._executor = BuildExecutor(engine, self._registry, self._settings)
        self._id_factory = id_factory or _new_build_id
        self._admission = asyncio.Semaphore(self._settings.max_concurrent_builds)
        self._active_builds: Dict[str, asyncio.Task] = {}

    @property
    def registry(self) -> BuildRegistry:
        return self._registry

    async def submit(
        self,
        image_reference: str,
        project_id: str,
        tasks: Optional[Sequence[Union[Command, Dict[str, Any]]]] = None,
    ) -> BuildRecord:
        record = BuildRecord(
            id=self._id_factory(),
            project_id=project_id,
            image_reference=image_reference,
            tasks=list(tasks or []),
        )

        await self._registry.append(record)

        task = asyncio.create_task(self._run_build(record), name=f"build-{record.id}")
        self._active_builds[record.id] = task
        task.add_done_callback(lambda t, build_id=record.id: self._on_build_finished(build_id, t))

        logger.info(f"Build {record.id} submitted for {image_reference} (project {project_id!r})")

        return record.model_copy(deep=True)

    async def list_all(self) -> List[BuildRecord]:
        return await self._registry.snapshot_all()

    async def list_by_project(self, project_id: str) -> List[BuildRecord]:
        return await self._registry.snapshot_by_project(project_id)

    async def get_by_id(self, build_id: str) -> BuildRecord:
        return await self._registry.snapshot_by_id(build_id)

    def get_active_builds(self) -> List[str]:
        return list(self._active_builds.keys())

    async def get_status(self) -> Dict[str, Any]:
        return {
            "total_builds": await self._registry.count(),
            "active_builds": len(self._active_builds),
            "max_concurrent_builds": self._settings.max_concurrent_builds,
            "builds_by_status": await self._registry.count_by_status(),
        }

    async def wait_idle(self) -> None:
        while self._active_builds:
            await asyncio.gather(*list(self._active_builds.values()), return_exceptions=True)

    async def stop(self) -> None:
        logger.info(f"Stopping build service with {len(self._active_builds)} active builds")

        tasks = list(self._active_builds.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        await self._engine.close()
        logger.info("Build service stopped")

    async def _run_build(self, record: BuildRecord) -> None:
        admitted = False
        try:
            async with self._admission:
                admitted = True
                await self._executor.execute(record)
        except asyncio.CancelledError:
            # The executor records its own cancellation once admitted.
            if not admitted:
                await self._executor.abandon(record, CANCELLED_REASON)
            raise

    def _on_build_finished(self, build_id: str, task: asyncio.Task) -> None:
        self._active_builds.pop(build_id, None)

        if task.cancelled():
            logger.info(f"Build {build_id} task cancelled")
            return

        error = task.exception()
        if error is not None:
            logger.error(f"Build {build_id} task crashed: {error!r}")
