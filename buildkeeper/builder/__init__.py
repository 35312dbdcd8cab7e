from buildkeeper.builder.build_executor import BuildExecutor
from buildkeeper.builder.container_engine import (
    ContainerEngine,
    ContainerInspection,
    DockerContainerEngine,
)
from buildkeeper.builder.log_relay import LogRelay

__all__ = [
    "BuildExecutor",
    "ContainerEngine",
    "ContainerInspection",
    "DockerContainerEngine",
    "LogRelay",
]
