"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import dataclasses
import os
import shlex
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from ..errors import ConfigError
from .logging import LoggingConfig
from .scheduler import EventsConfig, SchedulerConfig


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    """
    Master configuration for the scheduler.

    Aggregates all configuration sections into a single object that can
    be loaded from environment variables, files, or constructed
    programmatically.
    """

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    events: EventsConfig = field(default_factory=EventsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls, prefix: str = "BGJOBS_") -> Settings:
        """
        Load settings from environment variables.

        Example:
            BGJOBS_INTERPRETER=Rscript
            BGJOBS_OUTPUT_DIR=~/.cache/jobs
            BGJOBS_MAX_DEPENDENCIES=10
            BGJOBS_LOG_LEVEL=DEBUG
        """
        scheduler: dict[str, Any] = {}
        events: dict[str, Any] = {}
        logging_: dict[str, Any] = {}

        # Scheduler settings
        if interpreter := os.getenv(f"{prefix}INTERPRETER"):
            scheduler["interpreter"] = interpreter
        if interpreter_args := os.getenv(f"{prefix}INTERPRETER_ARGS"):
            scheduler["interpreter_args"] = shlex.split(interpreter_args)
        if extensions := os.getenv(f"{prefix}SCRIPT_EXTENSIONS"):
            scheduler["script_extensions"] = _env_list(extensions)
        if output_dir := os.getenv(f"{prefix}OUTPUT_DIR"):
            scheduler["output_dir"] = Path(output_dir).expanduser()
        if (stderr_prefix := os.getenv(f"{prefix}STDERR_PREFIX")) is not None:
            scheduler["stderr_prefix"] = stderr_prefix
        if banner := os.getenv(f"{prefix}COMPLETION_BANNER"):
            scheduler["completion_banner"] = _env_bool(banner)
        if max_deps := os.getenv(f"{prefix}MAX_DEPENDENCIES"):
            scheduler["max_dependencies"] = int(max_deps)
        if warn_deps := os.getenv(f"{prefix}WARN_DEPENDENCIES"):
            scheduler["warn_dependencies"] = int(warn_deps)

        # Event settings
        if queue_size := os.getenv(f"{prefix}EVENTS_MAX_QUEUE_SIZE"):
            events["max_queue_size"] = int(queue_size)
        if drop_policy := os.getenv(f"{prefix}EVENTS_DROP_POLICY"):
            events["drop_policy"] = drop_policy.lower()

        # Logging settings
        if level := os.getenv(f"{prefix}LOG_LEVEL"):
            logging_["level"] = level.upper()
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            logging_["format"] = log_format.lower()

        try:
            return cls(
                scheduler=SchedulerConfig(**scheduler),
                events=EventsConfig(**events),
                logging=LoggingConfig(**logging_),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid environment configuration: {e}", cause=e) from e

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)
        """
        path = Path(path)

        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise ConfigError(f"Unsupported config file format: {suffix}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The dictionary is validated against the configuration schema
        before any section is built.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise ConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        try:
            return cls(
                scheduler=SchedulerConfig(**data.get("scheduler", {})),
                events=EventsConfig(**data.get("events", {})),
                logging=LoggingConfig(**data.get("logging", {})),
            )
        except ValueError as e:
            raise ConfigError(f"Configuration validation failed: {e}", cause=e) from e

    @classmethod
    def default(cls) -> Settings:
        """Create default configuration."""
        return cls()

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return {k: convert(v) for k, v in dataclasses.asdict(obj).items()}
            elif isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            return obj

        return convert(self)


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating from the environment if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None, **kwargs) -> Settings:
    """
    Configure global settings.

    Args:
        settings: Settings object to use globally
        **kwargs: Override specific sections
    """
    global _global_settings

    if settings is not None:
        _global_settings = settings
    elif _global_settings is None:
        _global_settings = Settings.from_env()

    for key, value in kwargs.items():
        if hasattr(_global_settings, key):
            setattr(_global_settings, key, value)

    return _global_settings


def reset_settings() -> None:
    """Forget the global settings (mainly for tests)."""
    global _global_settings
    _global_settings = None


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        path: Optional path to a .env file. If not provided, uses find_dotenv().
        override: Whether to override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "reset_settings", "load_env"]
