"""
Command surface for the scheduler.

Each command is a direct call into the registry, executor or dependency
graph. Typed errors raised by the core are converted into a
``CommandResult`` so callers always receive a value.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .errors import ErrorCode, JobError
from .formatting import dependency_report, job_info, job_summary
from .jobs.executor import JobExecutor
from .jobs.registry import JobRegistry
from .jobs.types import PipelineInfo
from .logging import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """
    Standardized result of a command.

    Attributes:
        ok: Whether the command succeeded
        value: The command's payload (a Job, a list, a count...)
        message: Human-readable summary
        error: Error message if the command failed
        code: Error code if the command failed
    """

    ok: bool = True
    value: Any = None
    message: str = ""
    error: str | None = None
    code: ErrorCode | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_string(self) -> str:
        if not self.ok:
            return f"Error: {self.error}"
        return self.message

    @classmethod
    def success(cls, value: Any = None, message: str = "", **metadata: Any) -> CommandResult:
        return cls(ok=True, value=value, message=message, metadata=metadata)

    @classmethod
    def failure(cls, error: JobError) -> CommandResult:
        return cls(ok=False, error=error.message, code=error.code, metadata=error.to_dict())


class JobCommands:
    """Thin command layer over a registry/executor pair."""

    def __init__(self, executor: JobExecutor):
        self._executor = executor

    @property
    def registry(self) -> JobRegistry:
        return self._executor.registry

    def _run(self, name: str, fn, *args, **kwargs) -> CommandResult:
        try:
            return fn(*args, **kwargs)
        except JobError as exc:
            logger.log_error(exc, f"Command {name} failed")
            return CommandResult.failure(exc)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_job(
        self,
        script: str,
        depends_on: Iterable[int] | None = None,
        pipeline_name: str | None = None,
    ) -> CommandResult:
        def run() -> CommandResult:
            pipeline = PipelineInfo(pipeline_name) if pipeline_name else None
            job = self._executor.start(script, depends_on=depends_on, pipeline=pipeline)
            if job.depends_on:
                waiting = ", ".join(map(str, job.depends_on))
                message = f"Job {job.id} created (waiting for: {waiting})"
            else:
                message = f"Started job {job.id}: {job.name}"
            return CommandResult.success(job, message)

        return self._run("start_job", run)

    def cancel_job(self, job_id: int) -> CommandResult:
        def run() -> CommandResult:
            job = self._executor.cancel(job_id)
            return CommandResult.success(job, f"Job {job_id} cancelled")

        return self._run("cancel_job", run)

    def get_job(self, job_id: int) -> CommandResult:
        def run() -> CommandResult:
            job = self.registry.get(job_id)
            return CommandResult.success(job, job_summary(job))

        return self._run("get_job", run)

    def list_jobs(self) -> CommandResult:
        jobs = self.registry.list()
        return CommandResult.success(jobs, "\n".join(job_summary(job) for job in jobs))

    def clear_finished(self) -> CommandResult:
        count = self.registry.clear_finished()
        return CommandResult.success(count, f"Cleared {count} finished job(s)")

    def add_dependency(self, job_id: int, depends_on_id: int) -> CommandResult:
        def run() -> CommandResult:
            self.registry.graph.add_edge(job_id, depends_on_id)
            return CommandResult.success(
                self.registry.get(job_id),
                f"Added dependency: Job {job_id} now depends on Job {depends_on_id}",
            )

        return self._run("add_dependency", run)

    def remove_dependency(self, job_id: int, depends_on_id: int) -> CommandResult:
        def run() -> CommandResult:
            job = self.registry.remove_dependency(job_id, depends_on_id)
            return CommandResult.success(
                job,
                f"Removed dependency: Job {job_id} no longer depends on Job {depends_on_id}",
            )

        return self._run("remove_dependency", run)

    def show_dependencies(self, job_id: int) -> CommandResult:
        def run() -> CommandResult:
            job = self.registry.get(job_id)
            lines = dependency_report(job, self.registry.find)
            return CommandResult.success(
                {
                    "depends_on": self.registry.graph.dependencies(job_id),
                    "dependents": self.registry.graph.dependents(job_id),
                },
                "\n".join(lines),
            )

        return self._run("show_dependencies", run)

    def job_info(self, job_id: int) -> CommandResult:
        def run() -> CommandResult:
            job = self.registry.get(job_id)
            return CommandResult.success(job.to_dict(), "\n".join(job_info(job)))

        return self._run("job_info", run)

    def view_output(self, job_id: int) -> CommandResult:
        def run() -> CommandResult:
            output = self._executor.read_output(job_id)
            if output is None:
                return CommandResult.success(None, f"Output not found for job {job_id}")
            return CommandResult.success(output, output)

        return self._run("view_output", run)

    def delete_job(self, job_id: int) -> CommandResult:
        def run() -> CommandResult:
            job = self.registry.delete(job_id)
            return CommandResult.success(job, f"Deleted job {job_id}")

        return self._run("delete_job", run)

    def ready_jobs(self) -> CommandResult:
        jobs = self.registry.graph.ready_jobs()
        return CommandResult.success(jobs, ", ".join(str(job.id) for job in jobs) or "No ready jobs")


__all__ = ["CommandResult", "JobCommands"]
