from enum import Enum
from typing import Optional, Dict, Any

from buildkeeper.common.utils.time_utils import utc_now


class ErrorCode(str, Enum):
    UNKNOWN = "unknown"

    BUILD_TIMEOUT = "build_timeout"

    REGISTRY_ERROR = "registry_error"
    BUILD_NOT_FOUND = "build_not_found"
    DUPLICATE_BUILD = "duplicate_build"

    ENGINE_ERROR = "engine_error"
    ENGINE_UNAVAILABLE = "engine_unavailable"
    IMAGE_NOT_FOUND = "image_not_found"
    CONTAINER_ERROR = "container_error"


class BuildKeeperException(Exception):
    """Base class for every error the build service raises on purpose.

    Subclasses pin ``error_code`` and ``http_status``. ``transient`` marks
    failures that may not repeat if the same build is submitted again.
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    http_status: int = 500
    transient: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = dict(details or {})
        self.cause = cause
        self.raised_at = utc_now()

    def __str__(self) -> str:
        return f"[{self.error_code.value}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
            "transient": self.transient,
            "raised_at": self.raised_at.isoformat(),
        }

    def with_context(self, **kwargs: Any) -> "BuildKeeperException":
        self.details.update({k: v for k, v in kwargs.items() if v is not None})
        return self
