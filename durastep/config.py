from __future__ import annotations

import os
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


class LedgerConfig(BaseModel):
    """Retry policy for ledger writes that hit a busy database."""

    retry_attempts: int = Field(default=5, ge=1)
    retry_delay: float = Field(default=0.1, ge=0)
    retry_backoff: float = Field(default=1.0, ge=1.0)


class ExecutionConfig(BaseModel):
    """Replay settings for execution contexts."""

    zombie_timeout: float = Field(default=5.0, ge=0)


class DurastepConfig(BaseModel):
    """Top-level configuration model."""

    database_url: str = "sqlite://durable.db"
    ledger: LedgerConfig = LedgerConfig()
    execution: ExecutionConfig = ExecutionConfig()
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> DurastepConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to DURASTEP_CONFIG env
            variable or 'durastep.yaml' in the current directory.

    DURASTEP_DATABASE_URL, DURASTEP_LOG_LEVEL and DURASTEP_ZOMBIE_TIMEOUT
    override the corresponding file settings.
    """

    config_path = path or os.getenv("DURASTEP_CONFIG", "durastep.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = DurastepConfig(**data)
    else:
        config = DurastepConfig()

    return _apply_env_overrides(config)


def _apply_env_overrides(config: DurastepConfig) -> DurastepConfig:
    """Overlay DURASTEP_* environment variables onto a loaded config."""

    overrides: dict[str, Any] = {}
    if os.getenv("DURASTEP_DATABASE_URL"):
        overrides["database_url"] = os.environ["DURASTEP_DATABASE_URL"]
    if os.getenv("DURASTEP_LOG_LEVEL"):
        overrides["log_level"] = os.environ["DURASTEP_LOG_LEVEL"]
    if os.getenv("DURASTEP_ZOMBIE_TIMEOUT"):
        overrides["execution"] = {
            **config.execution.model_dump(),
            "zombie_timeout": os.environ["DURASTEP_ZOMBIE_TIMEOUT"],
        }
    if not overrides:
        return config
    # revalidate so bad env values fail like bad YAML values
    return DurastepConfig.model_validate({**config.model_dump(), **overrides})
