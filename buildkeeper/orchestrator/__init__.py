from buildkeeper.orchestrator.build_registry import BuildRegistry
from buildkeeper.orchestrator.build_service import BuildService

__all__ = [
    "BuildRegistry",
    "BuildService",
]
