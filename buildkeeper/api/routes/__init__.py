from buildkeeper.api.routes import builds, health

__all__ = [
    "builds",
    "health",
]
