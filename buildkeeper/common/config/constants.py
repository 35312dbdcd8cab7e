from enum import Enum
from typing import Final


class BuildStatus(str, Enum):
    PENDING = "pending"
    PULLING = "pulling"
    STARTING = "starting"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (BuildStatus.DONE, BuildStatus.FAILED)


# Forward-only order of the build state machine.
BUILD_STATUS_ORDER: Final[tuple] = (
    BuildStatus.PENDING,
    BuildStatus.PULLING,
    BuildStatus.STARTING,
    BuildStatus.RUNNING,
    BuildStatus.DONE,
)

SERIALIZATION_ERROR_CODE: Final[int] = 500
SERIALIZATION_ERROR_MESSAGE: Final[str] = "Syntax error"

CANCELLED_REASON: Final[str] = "cancelled"
