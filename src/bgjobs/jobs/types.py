"""
Job types for the background-job scheduler.

This module defines the JobStatus enum, the transition table and the
mutable Job entity that the registry owns.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import InvalidTransitionError


class JobStatus(str, Enum):
    """Job lifecycle states.

    State transitions:
    - QUEUED -> RUNNING (handed to the process runner)
    - PENDING -> RUNNING (every dependency completed)
    - PENDING -> SKIPPED (a dependency can never complete)
    - RUNNING -> COMPLETED (exit code 0)
    - RUNNING -> FAILED (nonzero or unresolved exit code)
    - RUNNING -> CANCELLED (explicitly cancelled)
    """
    QUEUED = "queued"
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        """Check if this is a terminal state."""
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        """Check if the job has not finished yet."""
        return not self.is_terminal

    @property
    def blocks_dependents(self) -> bool:
        """True when dependents of a job in this state can never run."""
        return self in {JobStatus.FAILED, JobStatus.CANCELLED, JobStatus.SKIPPED}


TERMINAL_STATUSES: frozenset[JobStatus] = frozenset({
    JobStatus.COMPLETED,
    JobStatus.FAILED,
    JobStatus.CANCELLED,
    JobStatus.SKIPPED,
})


# Valid state transitions
VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.QUEUED: {JobStatus.RUNNING},
    JobStatus.PENDING: {JobStatus.RUNNING, JobStatus.SKIPPED},
    JobStatus.RUNNING: {
        JobStatus.COMPLETED,
        JobStatus.FAILED,
        JobStatus.CANCELLED,
    },
    # Terminal states have no valid transitions
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
    JobStatus.CANCELLED: set(),
    JobStatus.SKIPPED: set(),
}


@dataclass(frozen=True)
class PipelineInfo:
    """Informational grouping metadata. Never consulted by scheduling."""
    name: str
    position: int | None = None
    total: int | None = None

    def label(self) -> str:
        if self.position is not None and self.total is not None:
            return f"{self.name} ({self.position}/{self.total})"
        return self.name


@dataclass(eq=False)
class Job:
    """One request to run an external script.

    ``depends_on`` and ``dependents`` mirror each other and are only
    mutated through ``DependencyGraph``.
    """
    # Identity
    id: int
    script: str
    name: str = ""

    # Status
    status: JobStatus = JobStatus.QUEUED

    # Timestamps
    created_at: float = field(default_factory=time.time)
    started_at: float | None = None
    ended_at: float | None = None

    # Execution
    process: Any = None
    pid: int | None = None
    exit_code: int | None = None
    output_ref: str | None = None

    # Dependencies
    depends_on: list[int] = field(default_factory=list)
    dependents: list[int] = field(default_factory=list)

    # Metadata
    pipeline: PipelineInfo | None = None
    skip_reason: str | None = None
    error: str | None = None

    def __post_init__(self):
        if not self.name:
            self.name = os.path.basename(self.script)

    @property
    def is_running(self) -> bool:
        return self.status == JobStatus.RUNNING

    @property
    def is_finished(self) -> bool:
        return self.status.is_terminal

    @property
    def duration(self) -> float:
        """Seconds spent running. Zero until the job starts."""
        if self.started_at is None:
            return 0.0
        end = self.ended_at if self.ended_at is not None else time.time()
        return max(0.0, end - self.started_at)

    def can_transition_to(self, new_status: JobStatus) -> bool:
        """Check if transition to new_status is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: JobStatus) -> JobStatus:
        """Move to ``new_status`` in place and return the previous status.

        Raises:
            InvalidTransitionError: If the transition is invalid
        """
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(self.id, self.status.value, new_status.value)

        previous = self.status
        now = time.time()
        self.status = new_status

        if new_status == JobStatus.RUNNING and self.started_at is None:
            self.started_at = now

        if new_status.is_terminal:
            self.ended_at = now
            self.process = None

        return previous

    def mark_running(self) -> JobStatus:
        return self.transition_to(JobStatus.RUNNING)

    def mark_completed(self, exit_code: int | None = 0) -> JobStatus:
        previous = self.transition_to(JobStatus.COMPLETED)
        self.exit_code = exit_code
        return previous

    def mark_failed(self, exit_code: int | None = None, error: str | None = None) -> JobStatus:
        previous = self.transition_to(JobStatus.FAILED)
        self.exit_code = exit_code
        self.error = error
        return previous

    def mark_cancelled(self) -> JobStatus:
        return self.transition_to(JobStatus.CANCELLED)

    def mark_skipped(self, reason: str | None = None) -> JobStatus:
        previous = self.transition_to(JobStatus.SKIPPED)
        self.skip_reason = reason or "Dependency failed"
        return previous

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "script": self.script,
            "status": self.status.value,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration": self.duration,
            "pid": self.pid,
            "exit_code": self.exit_code,
            "output_ref": self.output_ref,
            "depends_on": list(self.depends_on),
            "dependents": list(self.dependents),
            "pipeline": self.pipeline.label() if self.pipeline else None,
            "skip_reason": self.skip_reason,
            "error": self.error,
        }

    def __repr__(self) -> str:
        return f"Job(id={self.id}, name={self.name!r}, status={self.status.value})"


__all__ = [
    "JobStatus",
    "Job",
    "PipelineInfo",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
]
