from typing import Optional, Dict, Any

from buildkeeper.common.exceptions.base_exceptions import BuildKeeperException, ErrorCode


class EngineException(BuildKeeperException):
    """A call into the container engine failed."""

    error_code = ErrorCode.ENGINE_ERROR
    http_status = 502
    transient = True

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        image_reference: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, details=details, cause=cause)
        self.with_context(operation=operation, image_reference=image_reference)
        self.operation = operation
        self.image_reference = image_reference


class EngineUnavailableError(EngineException):
    error_code = ErrorCode.ENGINE_UNAVAILABLE
    http_status = 503

    def __init__(
        self,
        message: str = "Container engine is unavailable",
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, operation=operation, cause=cause)


class ImageNotFoundError(EngineException):
    """The engine rejected the image reference."""

    error_code = ErrorCode.IMAGE_NOT_FOUND
    transient = False

    def __init__(
        self,
        image_reference: str,
        message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message or f"Image not found: {image_reference}",
            operation="pull",
            image_reference=image_reference,
            cause=cause,
        )


class ContainerOperationError(EngineException):
    error_code = ErrorCode.CONTAINER_ERROR

    def __init__(
        self,
        message: str,
        operation: str,
        container_id: Optional[str] = None,
        image_reference: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message, operation=operation, image_reference=image_reference, cause=cause)
        self.with_context(container_id=container_id)
        self.container_id = container_id
