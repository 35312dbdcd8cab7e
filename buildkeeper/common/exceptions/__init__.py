from buildkeeper.common.exceptions.base_exceptions import BuildKeeperException, ErrorCode
from buildkeeper.common.exceptions.build_exceptions import BuildTimeoutException
from buildkeeper.common.exceptions.engine_exceptions import (
    EngineException,
    EngineUnavailableError,
    ImageNotFoundError,
    ContainerOperationError,
)
from buildkeeper.common.exceptions.registry_exceptions import (
    RegistryException,
    BuildNotFoundError,
    DuplicateBuildError,
)

__all__ = [
    "BuildKeeperException",
    "ErrorCode",
    "BuildTimeoutException",
    "EngineException",
    "EngineUnavailableError",
    "ImageNotFoundError",
    "ContainerOperationError",
    "RegistryException",
    "BuildNotFoundError",
    "DuplicateBuildError",
]
