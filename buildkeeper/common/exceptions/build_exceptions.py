from typing import Optional, Dict, Any

from buildkeeper.common.exceptions.base_exceptions import BuildKeeperException, ErrorCode


class BuildTimeoutException(BuildKeeperException):
    """An engine call, or draining the pull output, overran its time limit."""

    error_code = ErrorCode.BUILD_TIMEOUT
    http_status = 504
    transient = True

    def __init__(
        self,
        message: str,
        build_id: Optional[str] = None,
        stage: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, details=details, cause=cause)
        self.with_context(build_id=build_id, stage=stage, timeout_seconds=timeout_seconds)
        self.build_id = build_id
        self.stage = stage
        self.timeout_seconds = timeout_seconds
