"""
Job event types.

This module defines the JobEvent schema published by the registry and
executor:
- job.created: a job entered the registry
- job.started: a job was handed to the process runner
- job.finished: a job reached a terminal state
- job.output: a chunk of output was appended for a job
- dependency.warning: a job crossed the dependency warning threshold
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..jobs.types import Job


class JobEventType(str, Enum):
    """Event channels exposed to subscribers."""

    JOB_CREATED = "job.created"
    JOB_STARTED = "job.started"
    JOB_FINISHED = "job.finished"
    JOB_OUTPUT = "job.output"
    DEPENDENCY_WARNING = "dependency.warning"


@dataclass
class JobEvent:
    """A single scheduler event.

    Lifecycle events carry the live ``Job``; output events carry
    ``is_error`` and ``text`` in ``data``.
    """
    type: JobEventType
    job_id: int | None = None
    job: Job | None = None
    data: dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def for_job(cls, event_type: JobEventType, job: Job, **data: Any) -> JobEvent:
        return cls(
            type=event_type,
            job_id=job.id,
            job=job,
            data={"status": job.status.value, **data},
        )

    @classmethod
    def output(cls, job_id: int, is_error: bool, text: str) -> JobEvent:
        return cls(
            type=JobEventType.JOB_OUTPUT,
            job_id=job_id,
            data={"is_error": is_error, "text": text},
        )

    @property
    def is_error(self) -> bool:
        return bool(self.data.get("is_error", False))

    @property
    def text(self) -> str:
        return self.data.get("text", "")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "event_id": self.event_id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "job_id": self.job_id,
            "data": dict(self.data),
        }


__all__ = ["JobEventType", "JobEvent"]
