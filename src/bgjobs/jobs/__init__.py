"""
Job system for bgjobs.

This module provides the scheduling core:
- Job / JobStatus: the entity and its state machine
- DependencyGraph: validated dependency edges and readiness
- JobRegistry: ownership, lifecycle events and propagation
- JobExecutor: process execution, output capture, cancellation
"""

from .types import (
    Job,
    JobStatus,
    PipelineInfo,
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
)
from .graph import (
    DependencyGraph,
    Readiness,
    ReadinessState,
    MAX_DEPENDENCIES,
    WARN_DEPENDENCIES,
)
from .registry import JobRegistry
from .executor import JobExecutor

__all__ = [
    "Job",
    "JobStatus",
    "PipelineInfo",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    "DependencyGraph",
    "Readiness",
    "ReadinessState",
    "MAX_DEPENDENCIES",
    "WARN_DEPENDENCIES",
    "JobRegistry",
    "JobExecutor",
]
