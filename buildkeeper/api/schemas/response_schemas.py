from typing import Dict, List
from pydantic import BaseModel, Field
from datetime import datetime

from buildkeeper.common.dto.build import BuildRecord, Command


class BuildResponse(BaseModel):
    uuid: str
    tasks: List[Command] = Field(default_factory=list)
    project_id: str
    docker_image: str
    ip_address: str = ""
    done: bool = False
    logs: List[str] = Field(default_factory=list)
    status: str

    @classmethod
    def from_record(cls, record: BuildRecord) -> "BuildResponse":
        return cls(
            uuid=record.id,
            tasks=record.tasks,
            project_id=record.project_id,
            docker_image=record.image_reference,
            ip_address=record.address,
            done=record.done,
            logs=record.logs,
            status=record.status.value,
        )


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    total_builds: int
    active_builds: int
    max_concurrent_builds: int
    builds_by_status: Dict[str, int] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    code: int
    error_message: str
