"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]
DropPolicy = Literal["oldest", "newest"]


__all__ = ["LogLevel", "LogFormat", "DropPolicy"]
