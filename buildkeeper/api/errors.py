"""
Exception handlers that turn errors into the JSON error envelope.

Every error response has the shape ``{"code": <int>, "error_message": <str>}``.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from starlette import status

from buildkeeper.api.schemas.response_schemas import ErrorResponse
from buildkeeper.common.config.constants import (
    SERIALIZATION_ERROR_CODE,
    SERIALIZATION_ERROR_MESSAGE,
)
from buildkeeper.common.config.logging_config import get_logger
from buildkeeper.common.exceptions.base_exceptions import BuildKeeperException


logger = get_logger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(code=status_code, error_message=message).model_dump(),
    )


async def domain_exception_handler(request: Request, exc: BuildKeeperException) -> JSONResponse:
    """Answer with the status the exception class declares."""
    if exc.http_status >= 500:
        logger.error(
            f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}",
            extra={"details": exc.to_dict()},
        )
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.http_status}: {exc.message}")
    return error_response(exc.http_status, exc.message)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    message = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', '')}"
        for error in exc.errors()
    )
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, message or "Invalid request")


async def response_serialization_handler(request: Request, exc: ResponseValidationError) -> JSONResponse:
    logger.error(f"Could not serialize response for {request.method} {request.url.path}: {exc.errors()}")
    return error_response(SERIALIZATION_ERROR_CODE, SERIALIZATION_ERROR_MESSAGE)


def register_exception_handlers(app: FastAPI) -> None:
    # Subclasses of BuildKeeperException are dispatched here through the MRO.
    app.add_exception_handler(BuildKeeperException, domain_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ResponseValidationError, response_serialization_handler)
