"""
Job registry for lifecycle operations.

This module provides the JobRegistry that owns every Job, allocates IDs,
emits lifecycle events and propagates terminal states to dependents.
All mutation happens on a single control thread (the event loop); no
method here blocks or suspends.
"""

from __future__ import annotations

import itertools
import os
from collections import deque
from typing import Callable, Iterable

from ..errors import DependencyError, JobNotFoundError, JobRunningError, ScriptInvalidError
from ..events import EventBus, JobEvent, JobEventType
from ..logging import get_logger
from ..validation import ScriptValidator
from .graph import MAX_DEPENDENCIES, WARN_DEPENDENCIES, DependencyGraph
from .types import Job, JobStatus, PipelineInfo

logger = get_logger(__name__)

Launcher = Callable[[Job], None]


class JobRegistry:
    """Owns the job collection and the dependency edges between jobs.

    The JobRegistry is responsible for:
    - Creating jobs (validated script, monotonically increasing IDs)
    - Lookups and filtered listings
    - Deletion guards and bulk clearing of finished jobs
    - Terminal transitions followed by dependent propagation
    - Event emission for subscribers
    """

    def __init__(
        self,
        validator: ScriptValidator | None = None,
        events: EventBus | None = None,
        *,
        max_dependencies: int = MAX_DEPENDENCIES,
        warn_dependencies: int = WARN_DEPENDENCIES,
    ):
        self._jobs: dict[int, Job] = {}
        self._ids = itertools.count(1)
        self._validator = validator
        self._launcher: Launcher | None = None
        self.events = events or EventBus()
        self.graph = DependencyGraph(
            self,
            max_dependencies=max_dependencies,
            warn_dependencies=warn_dependencies,
            on_warning=self._emit_dependency_warning,
        )

    def attach_launcher(self, launcher: Launcher) -> None:
        """Register the callable that starts a ready job (the executor)."""
        self._launcher = launcher

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_job(
        self,
        script: str,
        *,
        depends_on: Iterable[int] = (),
        pipeline: PipelineInfo | None = None,
    ) -> Job:
        """Create and register a job.

        The job starts QUEUED without dependencies, PENDING otherwise.
        Dependency edges are registered through the graph; if any edge is
        rejected the job and every edge added so far are rolled back and
        the first error is raised. The dependency-count warning is only
        emitted once the job is registered.

        Raises:
            ScriptInvalidError: The validator rejected the script
            JobNotFoundError / DependencyError: An edge was rejected
        """
        if self._validator is not None:
            result = self._validator.validate(script)
            if not result.valid:
                raise ScriptInvalidError(result.reason or "Invalid script", script=script)

        depends_on = list(depends_on)
        job = Job(
            id=next(self._ids),
            script=os.path.abspath(os.path.expanduser(script)),
            status=JobStatus.PENDING if depends_on else JobStatus.QUEUED,
            pipeline=pipeline,
        )
        self._jobs[job.id] = job

        try:
            for dep_id in depends_on:
                self.graph.add_edge(job.id, dep_id, warn=False)
        except (JobNotFoundError, DependencyError) as exc:
            self.graph.detach(job)
            del self._jobs[job.id]
            logger.warning(
                "Job creation rolled back",
                job_id=job.id,
                reason=exc.message,
            )
            raise

        logger.info(
            f"Created job {job.id}: {job.name}",
            job_id=job.id,
            status=job.status.value,
            depends_on=list(job.depends_on),
        )
        self.publish(JobEvent.for_job(JobEventType.JOB_CREATED, job))
        if depends_on:
            self.graph.check_warning(job)
        return job

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find(self, job_id: int) -> Job | None:
        """Get a job by ID, or None."""
        return self._jobs.get(job_id)

    def get(self, job_id: int) -> Job:
        """Get a job by ID.

        Raises:
            JobNotFoundError: If the job doesn't exist
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list(self) -> list[Job]:
        """All jobs in creation order."""
        return list(self._jobs.values())

    def list_by_status(self, *statuses: JobStatus) -> list[Job]:
        wanted = set(statuses)
        return [job for job in self._jobs.values() if job.status in wanted]

    def list_running(self) -> list[Job]:
        return self.list_by_status(JobStatus.RUNNING)

    def list_pending(self) -> list[Job]:
        return self.list_by_status(JobStatus.PENDING)

    def list_finished(self) -> list[Job]:
        return [job for job in self._jobs.values() if job.is_finished]

    def count(self) -> int:
        return len(self._jobs)

    def running_count(self) -> int:
        return sum(1 for job in self._jobs.values() if job.is_running)

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def delete(self, job_id: int) -> Job:
        """Remove a job that is not running.

        Dependents keep their edge to the deleted ID and stay PENDING.

        Raises:
            JobNotFoundError: If the job doesn't exist
            JobRunningError: If the job is running
        """
        job = self.get(job_id)
        if job.is_running:
            raise JobRunningError(job_id, "Cannot delete running job. Cancel it first.")

        orphaned = [
            dep_id for dep_id in job.dependents
            if (dependent := self._jobs.get(dep_id)) is not None
            and dependent.status == JobStatus.PENDING
        ]
        if orphaned:
            logger.warning(
                f"DependencyDeleted: job {job_id} still has pending dependents",
                job_id=job_id,
                dependents=orphaned,
            )

        self._remove(job)
        logger.info(f"Deleted job {job_id}", job_id=job_id)
        return job

    def discard(self, job: Job) -> None:
        """Remove a job regardless of status. Used to roll back a failed start."""
        if self._jobs.get(job.id) is job:
            self._remove(job)

    def _remove(self, job: Job) -> None:
        self.graph.detach(job)
        del self._jobs[job.id]

    def clear_finished(self) -> int:
        """Remove every job in a terminal state and return how many."""
        finished = self.list_finished()
        for job in finished:
            self._remove(job)
        if finished:
            logger.info(f"Cleared {len(finished)} finished job(s)", count=len(finished))
        return len(finished)

    def clear_all(self) -> None:
        """Drop every job. IDs keep increasing."""
        self._jobs.clear()

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    def mark_completed(self, job_id: int, exit_code: int | None = 0) -> Job:
        job = self.get(job_id)
        previous = job.mark_completed(exit_code)
        return self._finish(job, previous)

    def mark_failed(self, job_id: int, exit_code: int | None = None, error: str | None = None) -> Job:
        job = self.get(job_id)
        previous = job.mark_failed(exit_code, error)
        return self._finish(job, previous)

    def mark_cancelled(self, job_id: int) -> Job:
        job = self.get(job_id)
        previous = job.mark_cancelled()
        return self._finish(job, previous)

    def _finish(self, job: Job, previous: JobStatus) -> Job:
        logger.log_transition(job.id, previous.value, job.status.value, exit_code=job.exit_code)
        self.publish(JobEvent.for_job(JobEventType.JOB_FINISHED, job))
        self.propagate(job.id)
        return job

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def propagate(self, job_id: int) -> None:
        """Re-evaluate the dependents of a finished job.

        Ready dependents are handed to the launcher; dependents blocked by
        a failed, cancelled or skipped dependency are skipped and their
        own dependents re-evaluated in turn. Dependents still waiting on
        another in-flight dependency are left PENDING.
        """
        worklist = deque([job_id])
        with logger.job_context(operation="propagate", extra={"source_job": job_id}):
            while worklist:
                finished = self._jobs.get(worklist.popleft())
                if finished is None:
                    continue

                for dependent_id in list(finished.dependents):
                    dependent = self._jobs.get(dependent_id)
                    if dependent is None or dependent.status != JobStatus.PENDING:
                        continue

                    readiness = self.graph.can_run(dependent)
                    if readiness.runnable:
                        self._launch(dependent)
                    elif readiness.blocked:
                        self._skip(dependent, readiness.reason)
                        worklist.append(dependent.id)

    def reevaluate(self, job_id: int) -> Job:
        """Apply the propagation rules to a single pending job.

        Used when a job's dependency set changes outside of a dependency
        finishing, e.g. a job created after its dependencies settled.
        """
        job = self.get(job_id)
        if job.status != JobStatus.PENDING:
            return job

        readiness = self.graph.can_run(job)
        if readiness.runnable:
            self._launch(job)
        elif readiness.blocked:
            self._skip(job, readiness.reason)
            self.propagate(job.id)
        return job

    def remove_dependency(self, job_id: int, depends_on_id: int) -> Job:
        """Remove an edge and re-evaluate the job, which may now be ready."""
        self.graph.remove_edge(job_id, depends_on_id)
        return self.reevaluate(job_id)

    def _skip(self, job: Job, reason: str) -> None:
        previous = job.mark_skipped(reason)
        logger.log_transition(job.id, previous.value, job.status.value, reason=reason)
        self.publish(JobEvent.for_job(JobEventType.JOB_FINISHED, job))

    def _launch(self, job: Job) -> None:
        if self._launcher is None:
            logger.warning("No launcher attached; ready job left pending", job_id=job.id)
            return
        logger.info(f"Starting dependent job {job.id}: {job.name}", job_id=job.id)
        self._launcher(job)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def publish(self, event: JobEvent) -> None:
        self.events.publish(event)

    def publish_output(self, job_id: int, is_error: bool, text: str) -> None:
        self.publish(JobEvent.output(job_id, is_error, text))

    def _emit_dependency_warning(self, job: Job, count: int) -> None:
        self.publish(JobEvent.for_job(
            JobEventType.DEPENDENCY_WARNING,
            job,
            count=count,
            limit=self.graph.max_dependencies,
        ))


__all__ = ["JobRegistry", "Launcher"]
