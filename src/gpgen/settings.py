"""Environment variable parsing for gpgen runtime settings.

Parses all GPGEN_* environment variables into a typed Settings object.
This is the only place where env vars are read.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator


class SettingsError(Exception):
    """Raised when a GPGEN_* variable holds an invalid value."""

    pass


class Settings(BaseModel):
    """Runtime settings for workflow generation.

    CLI flags take precedence over these values.
    """

    runs_on: str = Field(default="ubuntu-latest", description="GPGEN_RUNS_ON - Runner label for the job")
    job_id: str = Field(default="build", description="GPGEN_JOB_ID - Key of the generated job")
    output_dir: str = Field(
        default=".github/workflows", description="GPGEN_OUTPUT_DIR - Directory for generated workflows"
    )
    log_level: str = Field(default="INFO", description="GPGEN_LOG_LEVEL - Logging level name")

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_log_level(cls, v: Any) -> str:
        """Normalize and check the logging level name."""
        level = str(v).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("runs_on", "job_id", "output_dir")
    @classmethod
    def non_empty(cls, v: str) -> str:
        """Reject empty strings."""
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @property
    def log_level_number(self) -> int:
        """Numeric logging level for logging.basicConfig."""
        return logging.getLevelName(self.log_level)


# Environment variable names (single source of truth)
ENV_VARS = {
    "runs_on": "GPGEN_RUNS_ON",
    "job_id": "GPGEN_JOB_ID",
    "output_dir": "GPGEN_OUTPUT_DIR",
    "log_level": "GPGEN_LOG_LEVEL",
}


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Load and parse GPGEN_* environment variables into Settings.

    Args:
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Parsed Settings object

    Raises:
        SettingsError: If a variable holds an invalid value
    """
    if environ is None:
        environ = os.environ

    kwargs: dict[str, Any] = {}
    for field_name, env_var in ENV_VARS.items():
        value = environ.get(env_var)
        if value:
            kwargs[field_name] = value

    try:
        return Settings(**kwargs)
    except ValueError as e:
        raise SettingsError(f"Invalid gpgen settings: {e}") from e
