from buildkeeper.common.config.settings import Settings, Environment, get_settings
from buildkeeper.common.config.logging_config import (
    setup_logging,
    get_logger,
    get_build_logger,
)
from buildkeeper.common.config.constants import BuildStatus

__all__ = [
    "Settings",
    "Environment",
    "get_settings",
    "setup_logging",
    "get_logger",
    "get_build_logger",
    "BuildStatus",
]
