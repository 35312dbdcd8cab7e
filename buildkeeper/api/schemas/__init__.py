from buildkeeper.api.schemas.request_schemas import SubmitBuildRequest
from buildkeeper.api.schemas.response_schemas import (
    BuildResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    "SubmitBuildRequest",
    "BuildResponse",
    "HealthResponse",
    "ErrorResponse",
]
