from buildkeeper.common import config
from buildkeeper.common import dto
from buildkeeper.common import exceptions
from buildkeeper.common import utils

__all__ = [
    "config",
    "dto",
    "exceptions",
    "utils",
]
