"""Configuration loader -- reads config.yaml + .env, validates with Pydantic.

Resolves ${ENV_VAR} references in YAML values from environment variables.
Fails fast with clear errors if a job definition is invalid.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from core.models.jobs import JobConfig

logger = logging.getLogger(__name__)

# Default home directory for config and .env
DEFAULT_HOME = Path.home() / ".minutecron"

HOME_ENV_VAR = "MINUTECRON_HOME"

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def _substitute(match: re.Match[str]) -> str:
    name = match.group(1)
    if name not in os.environ:
        logger.warning("Environment variable %s not set", name)
        return match.group(0)
    return os.environ[name]


def _resolve_env_vars(value: Any) -> Any:
    """Replace ${VAR} in every string of a parsed YAML tree. Unset names stay as written."""
    if isinstance(value, str):
        return _ENV_REF.sub(_substitute, value)
    if isinstance(value, dict):
        return {key: _resolve_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_resolve_env_vars(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Config models (Pydantic)
# ---------------------------------------------------------------------------

class SchedulerConfig(BaseModel):
    # None -> the event loop's default executor
    max_workers: int | None = Field(default=None, ge=1)
    # Shell used for command jobs; None -> /bin/sh
    shell: str | None = None


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    """Top-level application configuration."""

    home_dir: str = str(DEFAULT_HOME)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    jobs: list[JobConfig] = Field(default_factory=list)

    @field_validator("jobs")
    @classmethod
    def _unique_job_ids(cls, jobs: list[JobConfig]) -> list[JobConfig]:
        seen: set[str] = set()
        for job in jobs:
            if job.id in seen:
                raise ValueError(f"Duplicate job id: {job.id!r}")
            seen.add(job.id)
        return jobs

    @property
    def home_path(self) -> Path:
        """Resolved home directory as a Path."""
        return Path(self.home_dir).expanduser()

    @property
    def enabled_jobs(self) -> list[JobConfig]:
        return [job for job in self.jobs if job.enabled]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def get_home_dir() -> Path:
    """The minutecron home directory ($MINUTECRON_HOME or ~/.minutecron)."""
    return Path(os.environ.get(HOME_ENV_VAR, str(DEFAULT_HOME))).expanduser()


def _load_env(path: Path) -> None:
    if not path.exists():
        logger.debug("No .env file at %s", path)
        return
    load_dotenv(path)
    logger.info("Loaded environment from %s", path)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        logger.warning("No config file at %s, using defaults", path)
        return {}
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    logger.info("Loaded config from %s", path)
    return data


def load_config(
    config_path: str | Path | None = None,
    env_path: str | Path | None = None,
) -> AppConfig:
    """Build an AppConfig from the home directory's config.yaml and .env.

    Either path may be given explicitly. Variables from .env are loaded
    before ${VAR} references are resolved, and $MINUTECRON_HOME wins over
    any `home_dir` in the file. Invalid job schedules or duplicate ids
    raise pydantic's ValidationError. The home directory is created on
    success.
    """
    home = get_home_dir()
    _load_env(Path(env_path) if env_path is not None else home / ".env")
    raw = _resolve_env_vars(
        _read_yaml(Path(config_path) if config_path is not None else home / "config.yaml")
    )

    if HOME_ENV_VAR in os.environ:
        raw["home_dir"] = os.environ[HOME_ENV_VAR]

    config = AppConfig(**raw)
    config.home_path.mkdir(parents=True, exist_ok=True)
    return config
