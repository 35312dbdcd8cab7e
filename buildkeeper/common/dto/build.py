from typing import List

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from buildkeeper.common.dto.base import BaseDTO
from buildkeeper.common.config.constants import BuildStatus, BUILD_STATUS_ORDER


class Command(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cmd: str = Field(validation_alias=AliasChoices("cmd", "Cmd"))


class BuildRecord(BaseDTO):
    """One build attempt, as stored in the registry and returned to clients.

    ``tasks`` is kept verbatim and never executed. ``done``, ``ip_address``
    and ``logs`` only ever move forward: use the mutators below rather than
    assigning those fields directly.
    """

    id: str = Field(alias="uuid")
    project_id: str = Field(default="")
    image_reference: str = Field(alias="docker_image")
    tasks: List[Command] = Field(default_factory=list)
    address: str = Field(default="", alias="ip_address")
    done: bool = Field(default=False)
    logs: List[str] = Field(default_factory=list)
    status: BuildStatus = Field(default=BuildStatus.PENDING)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def is_failed(self) -> bool:
        return self.status == BuildStatus.FAILED

    def transition_to(self, status: BuildStatus) -> None:
        if self.is_terminal:
            raise ValueError(
                f"Build {self.id} is already {self.status.value}, cannot move to {status.value}"
            )
        if status != BuildStatus.FAILED:
            if BUILD_STATUS_ORDER.index(status) < BUILD_STATUS_ORDER.index(self.status):
                raise ValueError(
                    f"Build {self.id} cannot move back from {self.status.value} to {status.value}"
                )
        self.status = status
        self.touch()

    def append_log(self, line: str) -> None:
        self.logs.append(line)
        self.touch()

    def complete(self, address: str) -> None:
        if self.address and self.address != address:
            raise ValueError(f"Build {self.id} already has address {self.address}")
        self.transition_to(BuildStatus.DONE)
        self.address = address
        self.done = True

    def fail(self, reason: str) -> None:
        self.transition_to(BuildStatus.FAILED)
        self.logs.append(reason)
