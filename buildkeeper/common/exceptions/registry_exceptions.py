from typing import Optional

from buildkeeper.common.exceptions.base_exceptions import BuildKeeperException, ErrorCode


class RegistryException(BuildKeeperException):
    error_code = ErrorCode.REGISTRY_ERROR

    def __init__(self, message: str, build_id: str, operation: Optional[str] = None):
        super().__init__(message)
        self.with_context(build_id=build_id, operation=operation)
        self.build_id = build_id
        self.operation = operation


class BuildNotFoundError(RegistryException):
    error_code = ErrorCode.BUILD_NOT_FOUND
    http_status = 404

    def __init__(self, build_id: str, operation: Optional[str] = None):
        super().__init__(f"Build {build_id} not found", build_id, operation=operation)


class DuplicateBuildError(RegistryException):
    error_code = ErrorCode.DUPLICATE_BUILD
    http_status = 409

    def __init__(self, build_id: str):
        super().__init__(f"Build {build_id} already exists", build_id, operation="append")
