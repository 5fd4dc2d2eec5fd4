"""
bgjobs - background job scheduler with dependency pipelines.

Runs external scripts as background processes, captures their output and
starts dependent jobs once everything they depend on has completed.
Call `load_env()` to pick up `BGJOBS_*` settings from a `.env` file.
"""

from .commands import CommandResult, JobCommands
from .config import Settings, configure, get_settings, load_env
from .errors import (
    ConfigError,
    CycleDetectedError,
    DependencyError,
    DependencyLimitError,
    DuplicateEdgeError,
    ErrorCode,
    InvalidTransitionError,
    JobError,
    JobNotFoundError,
    JobNotRunningError,
    JobRunningError,
    OutputReadError,
    ProcessSpawnError,
    ScriptInvalidError,
    SelfDependencyError,
)
from .events import EventBus, JobEvent, JobEventType
from .jobs import (
    DependencyGraph,
    Job,
    JobExecutor,
    JobRegistry,
    JobStatus,
    PipelineInfo,
    Readiness,
    ReadinessState,
)
from .logging import configure_logging, get_logger
from .output import FileOutputSink, InMemoryOutputSink, OutputSink
from .process import AsyncioProcessRunner, ProcessHandle, ProcessRunner
from .runtime import JobRuntime, create_runtime
from .validation import ScriptValidator, ValidationResult

__version__ = "0.1.0"

__all__ = [
    # Jobs
    "Job",
    "JobStatus",
    "PipelineInfo",
    "DependencyGraph",
    "Readiness",
    "ReadinessState",
    "JobRegistry",
    "JobExecutor",
    # Collaborators
    "ProcessRunner",
    "ProcessHandle",
    "AsyncioProcessRunner",
    "OutputSink",
    "FileOutputSink",
    "InMemoryOutputSink",
    "ScriptValidator",
    "ValidationResult",
    # Events
    "EventBus",
    "JobEvent",
    "JobEventType",
    # Commands & runtime
    "CommandResult",
    "JobCommands",
    "JobRuntime",
    "create_runtime",
    # Config & logging
    "Settings",
    "configure",
    "get_settings",
    "load_env",
    "configure_logging",
    "get_logger",
    # Errors
    "ErrorCode",
    "JobError",
    "JobNotFoundError",
    "DependencyError",
    "SelfDependencyError",
    "DuplicateEdgeError",
    "CycleDetectedError",
    "DependencyLimitError",
    "JobRunningError",
    "JobNotRunningError",
    "InvalidTransitionError",
    "ScriptInvalidError",
    "OutputReadError",
    "ProcessSpawnError",
    "ConfigError",
]
