from buildkeeper.common.dto.base import BaseDTO, TimestampMixin
from buildkeeper.common.dto.build import BuildRecord, Command

__all__ = [
    "BaseDTO",
    "TimestampMixin",
    "BuildRecord",
    "Command",
]
