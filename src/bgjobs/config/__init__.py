"""
Configuration system for bgjobs.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable and .env loading
- YAML/TOML file loading checked against a JSON schema
"""

from .base import DropPolicy, LogFormat, LogLevel
from .logging import LoggingConfig
from .scheduler import EventsConfig, SchedulerConfig
from .settings import Settings, configure, get_settings, load_env, reset_settings

__all__ = [
    # Types
    "DropPolicy",
    "LogLevel",
    "LogFormat",
    # Sections
    "SchedulerConfig",
    "EventsConfig",
    "LoggingConfig",
    # Master config
    "Settings",
    # Global functions
    "get_settings",
    "configure",
    "reset_settings",
    "load_env",
]
