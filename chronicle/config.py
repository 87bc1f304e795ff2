"""
Configuration for Chronicle.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from chronicle.core.database.engine import JOURNAL_MODES
from chronicle.utils.exceptions import ConfigurationError


class DatabaseConfig(BaseModel):
    """SQLite database configuration."""

    path: str = "data/chronicle.db"
    busy_timeout_ms: int = Field(default=5000, ge=0)
    journal_mode: str = "WAL"

    @field_validator("journal_mode")
    @classmethod
    def check_journal_mode(cls, value: str) -> str:
        mode = value.upper()
        if mode not in JOURNAL_MODES:
            raise ValueError(f"journal_mode must be one of {', '.join(JOURNAL_MODES)}")
        return mode


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in working directory)

        Returns:
            Config instance

        Environment variables:
            CHRONICLE_DB_PATH: SQLite database file
            CHRONICLE_DB_BUSY_TIMEOUT_MS: Busy timeout in milliseconds
            CHRONICLE_DB_JOURNAL_MODE: SQLite journal mode (WAL, DELETE, ...)
            CHRONICLE_LOG_LEVEL: Log level
            CHRONICLE_LOG_TO_FILE: Enable the rotating file sink
            CHRONICLE_LOG_DIR: Directory for log files
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None or value == "":
                return default
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            if isinstance(default, int):
                try:
                    return int(value)
                except ValueError as e:
                    raise ConfigurationError(
                        f"{key} must be an integer", {"key": key, "value": value}
                    ) from e
            return value

        return cls(
            database=DatabaseConfig(
                path=get_env("CHRONICLE_DB_PATH", "data/chronicle.db"),
                busy_timeout_ms=get_env("CHRONICLE_DB_BUSY_TIMEOUT_MS", 5000),
                journal_mode=get_env("CHRONICLE_DB_JOURNAL_MODE", "WAL"),
            ),
            logging=LoggingConfig(
                level=get_env("CHRONICLE_LOG_LEVEL", "INFO"),
                log_to_file=get_env("CHRONICLE_LOG_TO_FILE", False),
                log_dir=get_env("CHRONICLE_LOG_DIR", "logs"),
                file_rotation=get_env("CHRONICLE_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("CHRONICLE_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("CHRONICLE_LOG_COMPRESSION", "zip"),
                serialize=get_env("CHRONICLE_LOG_SERIALIZE", True),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ConfigurationError: If the document isn't a mapping
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        return cls(**_read_yaml(yaml_path))

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        A section is taken from the environment when any of its variables
        differ from the defaults.
        """
        if yaml_path and Path(yaml_path).exists():
            config_dict = _read_yaml(Path(yaml_path))
        else:
            config_dict = {}

        env_config = cls.from_env(env_file)
        default = cls()

        final_dict = {**config_dict}
        if env_config.database != default.database:
            final_dict["database"] = env_config.database.model_dump()
        if env_config.logging != default.logging:
            final_dict["logging"] = env_config.logging.model_dump()

        return cls(**final_dict) if final_dict else env_config


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a mapping", {"path": str(path)})
    return data
