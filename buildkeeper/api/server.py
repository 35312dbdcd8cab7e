from typing import Optional
from contextlib import asynccontextmanager
from fastapi import FastAPI

from buildkeeper import __version__
from buildkeeper.api.errors import register_exception_handlers
from buildkeeper.api.middleware.logging_middleware import LoggingMiddleware
from buildkeeper.api.routes import builds, health
from buildkeeper.builder.container_engine import DockerContainerEngine
from buildkeeper.orchestrator.build_service import BuildService
from buildkeeper.common.config.settings import get_settings
from buildkeeper.common.config.logging_config import get_logger


logger = get_logger(__name__)


def _create_default_service() -> BuildService:
    settings = get_settings()
    engine = DockerContainerEngine(
        base_url=settings.docker_base_url,
        timeout_seconds=settings.docker_timeout_seconds,
    )
    return BuildService(engine=engine, settings=settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting build service API")
    if getattr(app.state, "build_service", None) is None:
        app.state.build_service = _create_default_service()
    yield
    logger.info("Shutting down build service API")
    await app.state.build_service.stop()


def create_app(
    build_service: Optional[BuildService] = None,
    title: str = "Build Service API",
    version: str = __version__,
    debug: bool = False,
) -> FastAPI:
    app = FastAPI(
        title=title,
        version=version,
        description="Pulls container images, starts containers and tracks their builds",
        debug=debug,
        lifespan=lifespan,
    )
    app.state.build_service = build_service

    app.add_middleware(LoggingMiddleware)
    register_exception_handlers(app)

    app.include_router(builds.router, tags=["Builds"])
    app.include_router(health.router, tags=["Health"])

    logger.info(f"API server configured: {title} v{version}")

    return app
