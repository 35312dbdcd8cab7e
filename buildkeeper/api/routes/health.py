from fastapi import APIRouter, Depends
from typing import Dict

from buildkeeper import __version__
from buildkeeper.api.dependencies import get_build_service
from buildkeeper.api.schemas.response_schemas import HealthResponse
from buildkeeper.common.utils.time_utils import utc_now
from buildkeeper.orchestrator.build_service import BuildService


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    service: BuildService = Depends(get_build_service),
) -> HealthResponse:
    status = await service.get_status()

    return HealthResponse(
        status="healthy",
        timestamp=utc_now(),
        version=__version__,
        **status,
    )


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    return {"status": "alive", "timestamp": utc_now().isoformat()}
