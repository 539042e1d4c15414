"""
Runtime configuration.

Settings are read from environment variables once at startup and passed
explicitly to whatever needs them. Only the completion client consumes the
LLM and cache keys.
"""

import logging
import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, Field


DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "templates"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# Field name -> environment variable
ENV_VARS: dict[str, str] = {
    "api_url": "LOREWEAVER_LLM_URL",
    "api_key": "LOREWEAVER_LLM_API_KEY",
    "timeout_ms": "LOREWEAVER_LLM_TIMEOUT_MS",
    "default_model": "LOREWEAVER_LLM_MODEL",
    "cache_ttl_seconds": "LOREWEAVER_CACHE_TTL",
    "cache_sweep_threshold": "LOREWEAVER_CACHE_SWEEP_THRESHOLD",
    "cache_capacity": "LOREWEAVER_CACHE_CAPACITY",
    "templates_dir": "LOREWEAVER_TEMPLATES_DIR",
    "world_file": "LOREWEAVER_WORLD_FILE",
    "log_level": "LOREWEAVER_LOG_LEVEL",
}


class Settings(BaseModel):
    """Process configuration."""
    api_url: str = "http://localhost:8080"
    api_key: str = "change_this_key"
    timeout_ms: int = Field(default=60000, gt=0)
    default_model: str = "narrative-mistral-7b"
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_sweep_threshold: int = Field(default=100, ge=1)
    cache_capacity: int = Field(default=1000, ge=1)
    templates_dir: Path = DEFAULT_TEMPLATES_DIR
    world_file: Path | None = None
    log_level: str = "INFO"

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides,
    ) -> "Settings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            **overrides: Explicit values that win over the environment
        """
        environ = os.environ if environ is None else environ
        values: dict = {}
        for field_name, env_var in ENV_VARS.items():
            raw = environ.get(env_var)
            if raw not in (None, ""):
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging for entry points."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
