from typing import TYPE_CHECKING, Any, Awaitable, Optional
import asyncio

from buildkeeper.builder.container_engine import ContainerEngine
from buildkeeper.builder.log_relay import LogRelay
from buildkeeper.common.dto.build import BuildRecord
from buildkeeper.common.config.constants import BuildStatus, CANCELLED_REASON
from buildkeeper.common.config.settings import Settings, get_settings
from buildkeeper.common.config.logging_config import BuildLoggerAdapter, get_build_logger, get_logger
from buildkeeper.common.exceptions.base_exceptions import BuildKeeperException
from buildkeeper.common.exceptions.build_exceptions import BuildTimeoutException
from buildkeeper.common.exceptions.registry_exceptions import RegistryException
from buildkeeper.common.utils.time_utils import Timer, format_duration

if TYPE_CHECKING:
    from buildkeeper.orchestrator.build_registry import BuildRegistry


logger = get_logger(__name__)


class BuildExecutor:
    """Drives one build from pending to done, or to failed.

    The executor works on a private copy of the record and publishes a fresh
    copy to the registry after every mutation. The pull output is drained by
    a separate consumer task that shares the same working copy; both run on
    the event loop, so each mutation-and-publish step is atomic.
    """

    def __init__(
        self,
        engine: ContainerEngine,
        registry: "BuildRegistry",
        settings: Optional[Settings] = None,
    ):
        self._engine = engine
        self._registry = registry
        self._settings = settings or get_settings()

    async def execute(self, record: BuildRecord) -> BuildRecord:
        working = record.model_copy(deep=True)
        build_logger = get_build_logger(
            working.id,
            project_id=working.project_id,
            docker_image=working.image_reference,
        )
        timer = Timer().start()
        log_task: Optional[asyncio.Task] = None

        try:
            await self._advance(working, BuildStatus.PULLING)
            stream = await self._engine_call(
                working, "pull", self._engine.pull_image(working.image_reference)
            )

            relay = LogRelay.start(
                stream,
                max_queue_size=self._settings.relay_queue_size,
                max_line_length=self._settings.log_line_max_length,
            )
            log_task = asyncio.create_task(self._capture_logs(working, relay, build_logger))

            if self._settings.await_pull_before_create:
                await self._join_log_capture(working, log_task)

            await self._advance(working, BuildStatus.STARTING)
            container_id = await self._engine_call(
                working, "create", self._engine.create_container(working.image_reference)
            )
            await self._engine_call(working, "start", self._engine.start_container(container_id))

            await self._advance(working, BuildStatus.RUNNING)
            inspection = await self._engine_call(
                working, "inspect", self._engine.inspect_container(container_id)
            )
            if not inspection.running:
                build_logger.warning(f"Container {container_id[:12]} exited before it was inspected")

            # Every captured line is published before done.
            await self._join_log_capture(working, log_task)

            working.complete(inspection.network_address)
            await self._publish(working)
            build_logger.info(
                f"Build {working.id} done in {format_duration(timer.stop())}, "
                f"container {container_id[:12]} at {working.address or 'no address'}"
            )

        except asyncio.CancelledError:
            await self._stop_log_capture(log_task)
            await self._fail(working, CANCELLED_REASON, build_logger)
            raise
        except BuildKeeperException as e:
            await self._stop_log_capture(log_task)
            build_logger.error(f"Build {working.id} failed while {working.status.value}: {e}")
            await self._fail(working, f"Build failed while {working.status.value}: {e.message}", build_logger)
        except Exception as e:
            await self._stop_log_capture(log_task)
            build_logger.exception(f"Build {working.id} failed with unexpected error")
            await self._fail(working, f"Build failed while {working.status.value}: {e}", build_logger)

        return working

    async def abandon(self, record: BuildRecord, reason: str) -> BuildRecord:
        """Mark a build that never reached the engine as failed."""
        working = record.model_copy(deep=True)
        build_logger = get_build_logger(
            working.id,
            project_id=working.project_id,
            docker_image=working.image_reference,
        )
        build_logger.warning(f"Build {working.id} abandoned before it started: {reason}")
        await self._fail(working, reason, build_logger)
        return working

    async def _capture_logs(
        self,
        working: BuildRecord,
        relay: LogRelay,
        build_logger: BuildLoggerAdapter,
    ) -> int:
        captured = 0
        try:
            async for line in relay:
                build_logger.info(f"Pull output for build {working.id}: {line}")
                working.append_log(line)
                await self._publish(working)
                captured += 1
        finally:
            await relay.aclose()
        return captured

    async def _join_log_capture(self, working: BuildRecord, log_task: asyncio.Task) -> None:
        timeout = self._settings.pull_timeout_seconds
        try:
            await asyncio.wait_for(log_task, timeout=timeout)
        except asyncio.TimeoutError:
            raise BuildTimeoutException(
                message=f"Image pull did not finish within {timeout}s",
                build_id=working.id,
                stage="pull",
                timeout_seconds=timeout,
            )

    async def _stop_log_capture(self, log_task: Optional[asyncio.Task]) -> None:
        if log_task is None:
            return
        if not log_task.done():
            log_task.cancel()
        try:
            await log_task
        except asyncio.CancelledError:
            logger.debug("Log capture task cancelled")
        except Exception as e:
            logger.debug(f"Log capture ended with {type(e).__name__}: {e}")

    async def _engine_call(self, working: BuildRecord, stage: str, call: Awaitable[Any]) -> Any:
        timeout = self._settings.engine_call_timeout_seconds
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError:
            raise BuildTimeoutException(
                message=f"Container engine {stage} did not finish within {timeout}s",
                build_id=working.id,
                stage=stage,
                timeout_seconds=timeout,
            )

    async def _advance(self, working: BuildRecord, status: BuildStatus) -> None:
        working.transition_to(status)
        await self._publish(working)

    async def _publish(self, working: BuildRecord) -> None:
        working.increment_version()
        await self._registry.replace_by_id(working.model_copy(deep=True))

    async def _fail(self, working: BuildRecord, reason: str, build_logger: BuildLoggerAdapter) -> None:
        if working.is_terminal:
            build_logger.warning(
                f"Build {working.id} is already {working.status.value}, not marking it failed"
            )
            return

        working.fail(reason)
        try:
            await self._publish(working)
        except RegistryException as e:
            build_logger.error(f"Could not publish failure of build {working.id}: {e}")
