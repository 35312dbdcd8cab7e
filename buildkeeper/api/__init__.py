from buildkeeper.api.server import create_app
from buildkeeper.api.routes import builds, health
from buildkeeper.api.middleware.logging_middleware import LoggingMiddleware
from buildkeeper.api.schemas import SubmitBuildRequest, BuildResponse, ErrorResponse

__all__ = [
    "create_app",
    "builds",
    "health",
    "LoggingMiddleware",
    "SubmitBuildRequest",
    "BuildResponse",
    "ErrorResponse",
]
