import logging
import logging.config
from pathlib import Path
from typing import Optional, Dict, Any, Tuple

from pythonjsonlogger import jsonlogger

from buildkeeper.common.utils.time_utils import utc_now


LOG_FILE_NAME = "buildkeeper.log"

# Record attributes promoted to top-level JSON keys when set.
CONTEXT_FIELDS: Tuple[str, ...] = (
    "build_id",
    "project_id",
    "docker_image",
    "request_id",
    "status_code",
    "duration_ms",
)

# Libraries that are noisy at INFO.
QUIET_LOGGERS: Dict[str, str] = {
    "docker": "WARNING",
    "urllib3": "WARNING",
    "uvicorn.access": "WARNING",
}


class BuildJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = utc_now().isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["source"] = f"{record.module}:{record.funcName}:{record.lineno}"

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value


def get_logging_config(
    log_level: str = "INFO",
    json_format: bool = True,
    log_dir: Optional[str] = None
) -> Dict[str, Any]:
    formatter = "json" if json_format else "plain"
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "level": log_level,
            "formatter": formatter,
        }
    }

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(log_path / LOG_FILE_NAME),
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "level": log_level,
            "formatter": formatter,
        }

    handler_names = list(handlers)
    loggers: Dict[str, Dict[str, Any]] = {
        "buildkeeper": {
            "handlers": handler_names,
            "level": log_level,
            "propagate": False,
        },
    }
    for name, level in QUIET_LOGGERS.items():
        loggers[name] = {"level": level}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {
                "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            },
            "json": {
                "()": BuildJsonFormatter,
                "format": "%(timestamp)s %(level)s %(name)s %(message)s",
            },
        },
        "handlers": handlers,
        "root": {"handlers": handler_names, "level": log_level},
        "loggers": loggers,
    }


def setup_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    log_dir: Optional[str] = None
) -> None:
    logging.config.dictConfig(
        get_logging_config(log_level=log_level, json_format=json_format, log_dir=log_dir)
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class BuildLoggerAdapter(logging.LoggerAdapter):
    """Stamps every record with the identifiers of one build."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_build_logger(
    build_id: str,
    project_id: Optional[str] = None,
    docker_image: Optional[str] = None
) -> BuildLoggerAdapter:
    extra = {"build_id": build_id}
    if project_id:
        extra["project_id"] = project_id
    if docker_image:
        extra["docker_image"] = docker_image
    return BuildLoggerAdapter(get_logger("buildkeeper.build"), extra)
