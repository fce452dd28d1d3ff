"""Configuration loading with environment variable substitution."""

import json
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from sqlkv.exceptions import ConfigError, InvalidConfigError
from sqlkv.observability import LogLevel
from sqlkv.queries import validate_table_name

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)\}")


def substitute_env_vars(value: Any) -> Any:
    """Recursively substitute ${VAR_NAME} patterns with environment variables."""
    if isinstance(value, str):
        def replace(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable {var_name} is not set")
            return env_value

        return ENV_VAR_PATTERN.sub(replace, value)
    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]
    return value


class BackendConfig(BaseModel):
    """Storage backend configuration."""

    backend: str = "sqlite"  # sqlite | cloudflare_d1
    # SQLite
    path: str | None = None
    # Cloudflare D1
    account_id: str | None = None
    database_id: str | None = None
    api_token: str | None = None
    base_url: str | None = None
    timeout_seconds: float = 30.0

    def backend_kwargs(self) -> dict[str, Any]:
        """Constructor arguments for the selected backend, without unset values."""
        return self.model_dump(exclude={"backend"}, exclude_none=True)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: LogLevel = LogLevel.INFO
    format: Literal["json", "text"] = "json"


class KVConfig(BaseModel):
    """Main configuration for a key-value store."""

    table_name: str = "kv"
    clear_expired_threshold: float = 0.1
    backend: BackendConfig = Field(default_factory=BackendConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("table_name")
    @classmethod
    def _check_table_name(cls, value: str) -> str:
        try:
            return validate_table_name(value)
        except InvalidConfigError as e:
            raise ValueError(str(e)) from e

    @field_validator("clear_expired_threshold")
    @classmethod
    def _check_threshold(cls, value: float) -> float:
        if not 0 <= value <= 1:
            raise ValueError(f"clear_expired_threshold must be between 0 and 1, got {value}")
        return value

    @classmethod
    def from_file(cls, path: str | Path) -> "KVConfig":
        """Load configuration from a YAML or JSON file."""
        path = Path(path)
        with path.open() as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KVConfig":
        """Load configuration from a dictionary.

        Raises:
            ConfigError: If the data does not describe a valid configuration
        """
        data = substitute_env_vars(data)
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
