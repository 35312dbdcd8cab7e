from functools import lru_cache
from typing import Optional
from enum import Enum

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BUILDKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode flag")
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Emit JSON log records")
    log_dir: Optional[str] = Field(default=None)

    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=9000)

    docker_base_url: Optional[str] = Field(
        default=None,
        description="Docker daemon URL, falls back to DOCKER_HOST / local socket"
    )
    docker_timeout_seconds: int = Field(default=120, ge=1)

    max_concurrent_builds: int = Field(default=10)
    engine_call_timeout_seconds: float = Field(default=300.0)
    pull_timeout_seconds: float = Field(default=1800.0)
    await_pull_before_create: bool = Field(
        default=True,
        description="Wait for the image pull to finish before creating the container"
    )
    relay_queue_size: int = Field(default=1000)
    log_line_max_length: int = Field(default=4000)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator(
        "max_concurrent_builds",
        "engine_call_timeout_seconds",
        "pull_timeout_seconds",
        "relay_queue_size",
        "log_line_max_length",
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        if self.environment == Environment.PRODUCTION and self.debug:
            raise ValueError("Debug mode must be disabled in production")
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
