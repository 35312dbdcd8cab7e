from typing import List
from fastapi import APIRouter, Depends

from buildkeeper.api.dependencies import get_build_service
from buildkeeper.api.schemas.request_schemas import SubmitBuildRequest
from buildkeeper.api.schemas.response_schemas import BuildResponse, ErrorResponse
from buildkeeper.orchestrator.build_service import BuildService
from buildkeeper.common.config.logging_config import get_logger


logger = get_logger(__name__)
router = APIRouter()


@router.get("/builds", response_model=List[BuildResponse])
async def list_builds(
    service: BuildService = Depends(get_build_service),
) -> List[BuildResponse]:
    builds = await service.list_all()
    return [BuildResponse.from_record(b) for b in builds]


@router.get(
    "/build/{build_id}",
    response_model=BuildResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_build(
    build_id: str,
    service: BuildService = Depends(get_build_service),
) -> BuildResponse:
    build = await service.get_by_id(build_id)
    return BuildResponse.from_record(build)


@router.get("/build/project/{project_id}", response_model=List[BuildResponse])
async def list_project_builds(
    project_id: str,
    service: BuildService = Depends(get_build_service),
) -> List[BuildResponse]:
    builds = await service.list_by_project(project_id)
    return [BuildResponse.from_record(b) for b in builds]


@router.post("/builds", response_model=BuildResponse)
async def submit_build(
    payload: SubmitBuildRequest,
    service: BuildService = Depends(get_build_service),
) -> BuildResponse:
    build = await service.submit(
        image_reference=payload.docker_image,
        project_id=payload.project_id,
        tasks=payload.tasks,
    )
    logger.info(f"Build submitted via API: {build.id} for {payload.docker_image}")
    return BuildResponse.from_record(build)
