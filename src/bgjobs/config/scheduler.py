"""
Scheduler and event configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .base import DropPolicy


def _default_output_dir() -> Path:
    return Path.home() / ".local" / "share" / "bgjobs"


@dataclass
class SchedulerConfig:
    """Configuration for job execution and dependency limits."""

    # Execution
    interpreter: str = "Rscript"
    interpreter_args: list[str] = field(default_factory=list)
    script_extensions: list[str] = field(default_factory=lambda: [".R"])

    # Output
    output_dir: Path = field(default_factory=_default_output_dir)
    stderr_prefix: str = "[ERROR] "
    completion_banner: bool = True

    # Dependencies
    max_dependencies: int = 10
    warn_dependencies: int = 5

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.interpreter:
            raise ValueError("interpreter must not be empty")
        if isinstance(self.output_dir, str):
            self.output_dir = Path(self.output_dir).expanduser()
        if self.max_dependencies < 1:
            raise ValueError("max_dependencies must be positive")
        if self.warn_dependencies < 1:
            raise ValueError("warn_dependencies must be positive")
        if self.warn_dependencies > self.max_dependencies:
            raise ValueError("warn_dependencies cannot exceed max_dependencies")


@dataclass
class EventsConfig:
    """Configuration for queue-based event subscribers."""

    max_queue_size: int = 1000
    drop_policy: DropPolicy = "oldest"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.max_queue_size < 1:
            raise ValueError("max_queue_size must be positive")
        if self.drop_policy not in ("oldest", "newest"):
            raise ValueError(f"Invalid drop policy: {self.drop_policy}")


__all__ = ["SchedulerConfig", "EventsConfig"]
