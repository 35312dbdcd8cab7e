from typing import List
from pydantic import BaseModel, Field, field_validator

from buildkeeper.common.dto.build import Command


class SubmitBuildRequest(BaseModel):
    docker_image: str = Field(..., min_length=1, description="Container image to pull and run")
    project_id: str = Field(default="", description="Owning project, used for filtering")
    tasks: List[Command] = Field(default_factory=list, description="Stored verbatim, never executed")

    @field_validator("docker_image")
    @classmethod
    def validate_docker_image(cls, v: str) -> str:
        # Image references never contain whitespace; project ids are kept verbatim.
        v = v.strip()
        if not v:
            raise ValueError("docker_image must not be blank")
        return v
