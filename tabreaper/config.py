"""Configuration loading and validation using Pydantic models."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator


class DatabaseConfig(BaseModel):
    url: str = Field(
        "sqlite:///tabreaper.db",
        description="SQLAlchemy URL backing the key-value store.",
    )
    echo: bool = False


class EngineConfig(BaseModel):
    sweep_interval_s: float = Field(
        60.0,
        gt=0,
        description="Period of the sweep tick.",
    )
    store_timeout_s: float = Field(
        10.0,
        gt=0,
        description="Upper bound for a single store call before it is reported unavailable.",
    )
    janitor_on_start: bool = Field(
        True,
        description="Drop per-item keys for items that are no longer live when the service starts.",
    )


class LoggingConfig(BaseModel):
    level: str = Field("INFO")
    log_dir: Optional[Path] = Field(
        None, description="Directory for the rotating log file; console only when unset."
    )

    @field_validator("level")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return value.upper()


class ObservabilityConfig(BaseModel):
    prometheus_port: Optional[int] = Field(None, ge=1024, le=65535)


class AppConfig(BaseModel):
    database: DatabaseConfig = DatabaseConfig()
    engine: EngineConfig = EngineConfig()
    logging: LoggingConfig = LoggingConfig()
    observability: ObservabilityConfig = ObservabilityConfig()


def load_config(path: Path | str) -> AppConfig:
    """Load YAML configuration from disk, falling back to defaults when absent."""

    config_path = Path(path)
    if not config_path.exists():
        return AppConfig()
    with config_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return AppConfig.model_validate(data or {})
