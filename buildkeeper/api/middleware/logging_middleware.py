from typing import Callable
import logging
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from buildkeeper.common.config.logging_config import get_logger
from buildkeeper.common.utils.time_utils import Timer, format_duration


logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and tags the response with a request id.

    A request id supplied by the caller is reused so it can be followed
    across services.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }

        timer = Timer().start()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"{request.method} {request.url.path} raised {type(e).__name__} "
                f"after {format_duration(timer.stop())}",
                extra={**context, "error_type": type(e).__name__},
            )
            raise

        elapsed = timer.stop()
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code} in {format_duration(elapsed)}",
            extra={**context, "status_code": response.status_code, "duration_ms": round(elapsed * 1000, 2)},
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Response-Time"] = f"{elapsed * 1000:.2f}ms"
        return response
