from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, ValidationError, field_validator


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StoreConfig(BaseModel):
    url: str
    pool_size: int = Field(default=10, ge=1)
    max_overflow: int = Field(default=5, ge=0)
    pool_timeout: float = Field(default=30.0, gt=0)
    echo: bool = False

    @field_validator("url")
    @classmethod
    def validate_url_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("store.url cannot be empty")
        return value


class AggregatorConfig(BaseModel):
    max_workers: int | None = Field(default=None, ge=1)
    subtask_timeout: float | None = Field(default=120.0, gt=0)


class LoggingConfig(BaseModel):
    level: LogLevel = LogLevel.INFO
    json_output: bool = False

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.upper()
        return value


class TraceConfig(BaseModel):
    version: int
    store: StoreConfig
    aggregator: AggregatorConfig = Field(default_factory=AggregatorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("version")
    @classmethod
    def validate_version(cls, value: int) -> int:
        if value != 1:
            raise ValueError("Only trace config version=1 is supported")
        return value


def raise_config_error(context: str, error: ValidationError) -> ValueError:
    details = "; ".join(f"{'.'.join(map(str, e['loc']))}: {e['msg']}" for e in error.errors())
    return ValueError(f"{context} validation failed: {details}")
