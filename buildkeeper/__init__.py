__version__ = "1.0.0"

from buildkeeper import common
from buildkeeper import builder
from buildkeeper import orchestrator
from buildkeeper import api

__all__ = [
    "common",
    "builder",
    "orchestrator",
    "api",
]
