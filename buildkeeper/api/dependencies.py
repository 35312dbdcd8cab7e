from fastapi import Request

from buildkeeper.orchestrator.build_service import BuildService


def get_build_service(request: Request) -> BuildService:
    return request.app.state.build_service
