import uvicorn

from buildkeeper.api.server import create_app
from buildkeeper.common.config.settings import get_settings
from buildkeeper.common.config.logging_config import setup_logging, get_logger


def main():
    settings = get_settings()
    setup_logging(
        log_level=settings.log_level,
        json_format=settings.log_json,
        log_dir=settings.log_dir,
    )
    logger = get_logger(__name__)

    app = create_app(debug=settings.debug)

    logger.info(f"Starting API server on {settings.api_host}:{settings.api_port}")

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level="info" if not settings.debug else "debug",
        log_config=None,
    )


if __name__ == "__main__":
    main()
