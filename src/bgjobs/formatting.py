"""
Display helpers for jobs.

Human-readable durations, start times, status labels and the multi-line
descriptions returned by the command surface.
"""

from __future__ import annotations

import time
from typing import Callable

from .jobs.types import Job, JobStatus

STATUS_ICONS: dict[JobStatus, str] = {
    JobStatus.QUEUED: "○",
    JobStatus.PENDING: "⏳",
    JobStatus.RUNNING: "●",
    JobStatus.COMPLETED: "✓",
    JobStatus.FAILED: "✗",
    JobStatus.CANCELLED: "✕",
    JobStatus.SKIPPED: "⊘",
}

STATUS_LABELS: dict[JobStatus, str] = {
    JobStatus.QUEUED: "Queued",
    JobStatus.PENDING: "Pending",
    JobStatus.RUNNING: "Running",
    JobStatus.COMPLETED: "Done",
    JobStatus.FAILED: "Failed",
    JobStatus.CANCELLED: "Cancelled",
    JobStatus.SKIPPED: "Skipped",
}


def format_duration(seconds: float | None) -> str:
    """Format a duration as ``"2.3s"``, ``"1m 23s"`` or ``"2h 15m"``."""
    if seconds is None or seconds < 0:
        return "0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{secs:.1f}s"


def format_time(timestamp: float | None) -> str:
    """Local wall-clock time as HH:MM:SS, empty when unknown."""
    if timestamp is None:
        return ""
    return time.strftime("%H:%M:%S", time.localtime(timestamp))


def status_icon(status: JobStatus) -> str:
    return STATUS_ICONS.get(status, "?")


def status_label(status: JobStatus) -> str:
    """Icon followed by the display name, e.g. ``"✓ Done"``."""
    return f"{status_icon(status)} {STATUS_LABELS.get(status, status.value.capitalize())}"


def job_summary(job: Job) -> str:
    """One-line description used in job listings."""
    started = format_time(job.started_at) or "-"
    return (
        f"[{job.id}] {job.name} - {job.status.value} "
        f"(started: {started}, duration: {format_duration(job.duration)})"
    )


def job_info(job: Job) -> list[str]:
    """Multi-line description of a job."""
    lines = [
        "Job Information:",
        f"  ID: {job.id}",
        f"  Name: {job.name}",
        f"  Script: {job.script}",
        f"  Status: {status_label(job.status)}",
        f"  Started: {format_time(job.started_at)}",
        f"  Duration: {format_duration(job.duration)}",
        f"  Output: {job.output_ref or 'N/A'}",
        f"  PID: {job.pid if job.pid is not None else 'N/A'}",
    ]
    if job.exit_code is not None:
        lines.append(f"  Exit code: {job.exit_code}")
    if job.depends_on:
        lines.append(f"  Depends on: {', '.join(map(str, job.depends_on))}")
    if job.dependents:
        lines.append(f"  Dependents: {', '.join(map(str, job.dependents))}")
    if job.pipeline is not None:
        lines.append(f"  Pipeline: {job.pipeline.label()}")
    if job.skip_reason:
        lines.append(f"  Skip reason: {job.skip_reason}")
    if job.error:
        lines.append(f"  Error: {job.error}")
    return lines


def dependency_report(job: Job, lookup: Callable[[int], Job | None]) -> list[str]:
    """Both directions of a job's edges, naming missing jobs as such."""

    def describe(arrow: str, job_id: int) -> str:
        other = lookup(job_id)
        if other is None:
            return f"  {arrow} Job {job_id}: (not found)"
        return f"  {arrow} Job {job_id}: {other.name} [{other.status.value}]"

    lines = [f"Dependencies for Job {job.id} ({job.name}):", ""]

    if job.depends_on:
        lines.append("Depends on:")
        lines.extend(describe("→", dep_id) for dep_id in job.depends_on)
    else:
        lines.append("Depends on: None")

    lines.append("")

    if job.dependents:
        lines.append("Dependents (jobs waiting for this):")
        lines.extend(describe("←", dep_id) for dep_id in job.dependents)
    else:
        lines.append("Dependents: None")

    return lines


__all__ = [
    "STATUS_ICONS",
    "STATUS_LABELS",
    "format_duration",
    "format_time",
    "status_icon",
    "status_label",
    "job_summary",
    "job_info",
    "dependency_report",
]
