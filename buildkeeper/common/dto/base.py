from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict

from buildkeeper.common.utils.time_utils import utc_now


class TimestampMixin(BaseModel):
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def touch(self) -> None:
        self.updated_at = utc_now()


class BaseDTO(TimestampMixin):
    model_config = ConfigDict(
        populate_by_name=True,
        validate_assignment=True,
    )

    version: int = Field(default=0, exclude=True)

    def increment_version(self) -> None:
        self.version += 1
        self.touch()
