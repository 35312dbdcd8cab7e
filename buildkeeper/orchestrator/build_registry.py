from typing import Dict, List
import asyncio

from buildkeeper.common.dto.build import BuildRecord
from buildkeeper.common.config.logging_config import get_logger
from buildkeeper.common.exceptions.registry_exceptions import (
    BuildNotFoundError,
    DuplicateBuildError,
)


logger = get_logger(__name__)


class BuildRegistry:
    """In-memory store of every build record.

    All access is serialized by a single lock. Records go in and come out as
    deep copies, so no caller ever holds a reference to the stored object.
    """

    def __init__(self):
        self._builds: Dict[str, BuildRecord] = {}
        self._lock = asyncio.Lock()

    async def append(self, record: BuildRecord) -> None:
        async with self._lock:
            if record.id in self._builds:
                raise DuplicateBuildError(record.id)
            self._builds[record.id] = record.model_copy(deep=True)

        logger.debug(f"Registered build {record.id} for project {record.project_id!r}")

    async def replace_by_id(self, record: BuildRecord) -> BuildRecord:
        async with self._lock:
            current = self._builds.get(record.id)
            if current is None:
                raise BuildNotFoundError(record.id, operation="replace")

            # Publishes can be reordered while waiting on the lock.
            if record.version <= current.version:
                logger.debug(
                    f"Discarding stale update for build {record.id} "
                    f"(version {record.version} <= {current.version})"
                )
                return current.model_copy(deep=True)

            self._builds[record.id] = record.model_copy(deep=True)

        logger.debug(f"Updated build {record.id} to version {record.version}")
        return record.model_copy(deep=True)

    async def snapshot_all(self) -> List[BuildRecord]:
        async with self._lock:
            return [build.model_copy(deep=True) for build in self._builds.values()]

    async def snapshot_by_project(self, project_id: str) -> List[BuildRecord]:
        async with self._lock:
            return [
                build.model_copy(deep=True)
                for build in self._builds.values()
                if build.project_id == project_id
            ]

    async def snapshot_by_id(self, build_id: str) -> BuildRecord:
        async with self._lock:
            build = self._builds.get(build_id)
            if build is None:
                raise BuildNotFoundError(build_id, operation="get")
            return build.model_copy(deep=True)

    async def count(self) -> int:
        async with self._lock:
            return len(self._builds)

    async def count_by_status(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        async with self._lock:
            for build in self._builds.values():
                counts[build.status.value] = counts.get(build.status.value, 0) + 1
        return counts
