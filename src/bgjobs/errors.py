"""
Error taxonomy for bgjobs.

This module provides a hierarchical exception system with:
- Error codes for programmatic handling
- Structured context (job IDs, operation) for debugging
- A `to_dict()` form for logging and command results
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the scheduler."""

    # Lookup errors (1xxx)
    NOT_FOUND = "ERR_1000"

    # Dependency graph errors (2xxx)
    DEPENDENCY_ERROR = "ERR_2000"
    SELF_DEPENDENCY = "ERR_2001"
    DUPLICATE_EDGE = "ERR_2002"
    CYCLE_DETECTED = "ERR_2003"
    LIMIT_EXCEEDED = "ERR_2004"

    # Lifecycle errors (3xxx)
    JOB_RUNNING = "ERR_3000"
    NOT_RUNNING = "ERR_3001"
    INVALID_TRANSITION = "ERR_3002"

    # Execution errors (4xxx)
    SCRIPT_INVALID = "ERR_4000"
    PROCESS_SPAWN_FAILED = "ERR_4001"
    OUTPUT_READ_FAILED = "ERR_4002"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


class JobError(Exception):
    """
    Base exception for all scheduler errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        job_id: Job the error refers to, when there is one
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        *,
        job_id: int | None = None,
        code: ErrorCode | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.job_id = job_id
        if code is not None:
            self.code = code
        self.cause = cause

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "job_id": self.job_id,
            "cause": str(self.cause) if self.cause else None,
        }


class JobNotFoundError(JobError):
    """A job or dependency ID is unknown to the registry."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, job_id: int, message: str | None = None, **kwargs):
        super().__init__(message or f"Job not found: {job_id}", job_id=job_id, **kwargs)


# =============================================================================
# Dependency Errors
# =============================================================================


class DependencyError(JobError):
    """Base class for rejected dependency edges."""

    code = ErrorCode.DEPENDENCY_ERROR

    def __init__(self, message: str, *, job_id: int, depends_on_id: int, **kwargs):
        super().__init__(message, job_id=job_id, **kwargs)
        self.depends_on_id = depends_on_id

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["depends_on_id"] = self.depends_on_id
        return data


class SelfDependencyError(DependencyError):
    """A job cannot depend on itself."""

    code = ErrorCode.SELF_DEPENDENCY

    def __init__(self, job_id: int, **kwargs):
        super().__init__("Job cannot depend on itself", job_id=job_id, depends_on_id=job_id, **kwargs)


class DuplicateEdgeError(DependencyError):
    """The edge already exists."""

    code = ErrorCode.DUPLICATE_EDGE

    def __init__(self, job_id: int, depends_on_id: int, **kwargs):
        super().__init__(
            f"Job {job_id} already depends on {depends_on_id}",
            job_id=job_id,
            depends_on_id=depends_on_id,
            **kwargs,
        )


class CycleDetectedError(DependencyError):
    """Inserting the edge would create a cycle."""

    code = ErrorCode.CYCLE_DETECTED

    def __init__(self, job_id: int, depends_on_id: int, **kwargs):
        super().__init__(
            f"Adding dependency {job_id} -> {depends_on_id} would create a cycle",
            job_id=job_id,
            depends_on_id=depends_on_id,
            **kwargs,
        )


class DependencyLimitError(DependencyError):
    """The job already has the maximum number of dependencies."""

    code = ErrorCode.LIMIT_EXCEEDED

    def __init__(self, job_id: int, depends_on_id: int, *, limit: int, **kwargs):
        super().__init__(
            f"Maximum dependencies limit ({limit}) reached for job {job_id}",
            job_id=job_id,
            depends_on_id=depends_on_id,
            **kwargs,
        )
        self.limit = limit


# =============================================================================
# Lifecycle Errors
# =============================================================================


class JobRunningError(JobError):
    """Operation is not allowed while the job is running."""

    code = ErrorCode.JOB_RUNNING

    def __init__(self, job_id: int, message: str | None = None, **kwargs):
        super().__init__(
            message or f"Job {job_id} is running. Cancel it first.",
            job_id=job_id,
            **kwargs,
        )


class JobNotRunningError(JobError):
    """Operation requires a running job."""

    code = ErrorCode.NOT_RUNNING

    def __init__(self, job_id: int, status: str | None = None, **kwargs):
        message = f"Job {job_id} is not running"
        if status:
            message += f" (status: {status})"
        super().__init__(message, job_id=job_id, **kwargs)
        self.status = status


class InvalidTransitionError(JobError):
    """Illegal state-machine move. Indicates a programming error."""

    code = ErrorCode.INVALID_TRANSITION

    def __init__(self, job_id: int, current: str, target: str, **kwargs):
        super().__init__(
            f"Invalid transition for job {job_id}: {current} -> {target}",
            job_id=job_id,
            **kwargs,
        )
        self.current = current
        self.target = target


# =============================================================================
# Execution Errors
# =============================================================================


class ScriptInvalidError(JobError):
    """The script validator rejected the script reference."""

    code = ErrorCode.SCRIPT_INVALID

    def __init__(self, message: str, *, script: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.script = script


class ProcessSpawnError(JobError):
    """The process runner could not start the external process."""

    code = ErrorCode.PROCESS_SPAWN_FAILED

    def __init__(self, message: str = "Failed to start process", *, command: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.command = command


class OutputReadError(JobError):
    """Captured output exists but could not be read back."""

    code = ErrorCode.OUTPUT_READ_FAILED

    def __init__(self, job_id: int, ref: str, cause: Exception, **kwargs):
        super().__init__(
            f"Failed to read output for job {job_id}: {cause}",
            job_id=job_id,
            cause=cause,
            **kwargs,
        )
        self.ref = ref


# =============================================================================
# Config Errors
# =============================================================================


class ConfigError(JobError):
    """Configuration could not be loaded or is invalid."""

    code = ErrorCode.CONFIG_ERROR


__all__ = [
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
    "ProcessSpawnError",
    "OutputReadError",
    "ConfigError",
]
