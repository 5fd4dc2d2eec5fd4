"""
Dependency graph over registry jobs.

The graph holds no state of its own: edges live on the jobs
(``depends_on`` / ``dependents``) and jobs are looked up through the
registry. All edge mutations go through ``_link`` / ``_unlink`` so both
halves of an edge change together.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Protocol

from ..errors import (
    CycleDetectedError,
    DependencyLimitError,
    DuplicateEdgeError,
    JobNotFoundError,
    SelfDependencyError,
)
from ..logging import get_logger
from .types import Job, JobStatus

MAX_DEPENDENCIES = 10
WARN_DEPENDENCIES = 5

logger = get_logger(__name__)


class JobLookup(Protocol):
    """The slice of the registry the graph needs."""

    def find(self, job_id: int) -> Job | None: ...

    def list(self) -> list[Job]: ...


class ReadinessState(str, Enum):
    READY = "ready"
    WAITING = "waiting"      # some dependency still in flight
    MISSING = "missing"      # some dependency no longer exists
    BLOCKED = "blocked"      # some dependency can never complete


@dataclass(frozen=True)
class Readiness:
    """Outcome of the ``can_run`` predicate."""
    state: ReadinessState
    reason: str
    dependency_id: int | None = None

    @property
    def runnable(self) -> bool:
        return self.state == ReadinessState.READY

    @property
    def blocked(self) -> bool:
        return self.state == ReadinessState.BLOCKED


class DependencyGraph:
    """Validates and mutates dependency edges between jobs."""

    def __init__(
        self,
        jobs: JobLookup,
        *,
        max_dependencies: int = MAX_DEPENDENCIES,
        warn_dependencies: int = WARN_DEPENDENCIES,
        on_warning: Callable[[Job, int], None] | None = None,
    ):
        self._jobs = jobs
        self.max_dependencies = max_dependencies
        self.warn_dependencies = warn_dependencies
        self._on_warning = on_warning

    # ------------------------------------------------------------------
    # Edge mutation
    # ------------------------------------------------------------------

    def add_edge(self, job_id: int, depends_on_id: int, *, warn: bool = True) -> None:
        """Make ``job_id`` depend on ``depends_on_id``.

        With ``warn=False`` the dependency-count warning is left to the
        caller (see ``check_warning``).

        Raises:
            JobNotFoundError: Either job is absent
            SelfDependencyError: ``job_id == depends_on_id``
            DuplicateEdgeError: The edge already exists
            DependencyLimitError: The job already has the maximum dependencies
            CycleDetectedError: The edge would close a cycle
        """
        job = self._require(job_id)
        dependency = self._jobs.find(depends_on_id)
        if dependency is None:
            raise JobNotFoundError(depends_on_id, f"Dependency job not found: {depends_on_id}")
        if job_id == depends_on_id:
            raise SelfDependencyError(job_id)
        if depends_on_id in job.depends_on:
            raise DuplicateEdgeError(job_id, depends_on_id)
        if len(job.depends_on) >= self.max_dependencies:
            raise DependencyLimitError(job_id, depends_on_id, limit=self.max_dependencies)
        self.validate_no_cycle(job_id, depends_on_id)

        self._link(job, dependency)
        logger.debug("Dependency added", job_id=job_id, depends_on=depends_on_id)

        if warn:
            self.check_warning(job)

    def check_warning(self, job: Job) -> None:
        """Warn when ``job`` has reached the dependency warning threshold."""
        count = len(job.depends_on)
        if count >= self.warn_dependencies:
            logger.warning(
                f"Job {job.id} has {count} dependencies",
                job_id=job.id,
                count=count,
                limit=self.max_dependencies,
            )
            if self._on_warning is not None:
                self._on_warning(job, count)

    def remove_edge(self, job_id: int, depends_on_id: int) -> None:
        """Remove the edge ``job_id -> depends_on_id``.

        Raises:
            JobNotFoundError: The job or the edge does not exist
        """
        job = self._require(job_id)
        if depends_on_id not in job.depends_on:
            raise JobNotFoundError(
                job_id,
                f"Job {job_id} does not depend on {depends_on_id}",
            )
        self._unlink(job, depends_on_id)
        logger.debug("Dependency removed", job_id=job_id, depends_on=depends_on_id)

    def detach(self, job: Job) -> None:
        """Drop ``job`` from the dependents of everything it depends on.

        Edges pointing *at* the job are left in place.
        """
        for depends_on_id in list(job.depends_on):
            self._unlink(job, depends_on_id)

    def _link(self, job: Job, dependency: Job) -> None:
        job.depends_on.append(dependency.id)
        if job.id not in dependency.dependents:
            dependency.dependents.append(job.id)

    def _unlink(self, job: Job, depends_on_id: int) -> None:
        job.depends_on.remove(depends_on_id)
        dependency = self._jobs.find(depends_on_id)
        if dependency is not None and job.id in dependency.dependents:
            dependency.dependents.remove(job.id)

    # ------------------------------------------------------------------
    # Cycle detection
    # ------------------------------------------------------------------

    def would_create_cycle(self, job_id: int, proposed_id: int) -> bool:
        """Depth-first search from ``job_id`` over existing edges plus the proposed one.

        The real graph is never mutated; the proposed edge is added as an
        extra hop when ``job_id`` is expanded.
        """
        def edges(node: int) -> list[int]:
            deps = self._dependencies_of(node)
            if node == job_id:
                return [*deps, proposed_id]
            return deps

        visited = {job_id}
        on_stack = {job_id}
        stack = [(job_id, iter(edges(job_id)))]

        while stack:
            node, pending = stack[-1]
            nxt = next(pending, None)
            if nxt is None:
                stack.pop()
                on_stack.discard(node)
                continue
            if nxt in on_stack:
                return True
            if nxt in visited:
                continue
            visited.add(nxt)
            on_stack.add(nxt)
            stack.append((nxt, iter(edges(nxt))))

        return False

    def validate_no_cycle(self, job_id: int, proposed_id: int) -> None:
        """Raise ``CycleDetectedError`` if the proposed edge would close a cycle."""
        if self.would_create_cycle(job_id, proposed_id):
            raise CycleDetectedError(job_id, proposed_id)

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    def can_run(self, job: Job) -> Readiness:
        """Evaluate whether every dependency of ``job`` has completed.

        A blocked dependency wins over a missing one, which wins over one
        still in flight, so the reason names the decisive dependency.
        """
        if not job.depends_on:
            return Readiness(ReadinessState.READY, "No dependencies")

        missing: int | None = None
        waiting: int | None = None
        for dep_id in job.depends_on:
            dependency = self._jobs.find(dep_id)
            if dependency is None:
                if missing is None:
                    missing = dep_id
                continue
            if dependency.status.blocks_dependents:
                return Readiness(
                    ReadinessState.BLOCKED,
                    f"Dependency job {dep_id} ({dependency.name}) {dependency.status.value}",
                    dep_id,
                )
            if dependency.status != JobStatus.COMPLETED and waiting is None:
                waiting = dep_id

        if missing is not None:
            return Readiness(ReadinessState.MISSING, f"Dependency job {missing} not found", missing)
        if waiting is not None:
            return Readiness(ReadinessState.WAITING, f"Dependency job {waiting} not yet completed", waiting)
        return Readiness(ReadinessState.READY, "All dependencies satisfied")

    def ready_jobs(self) -> list[Job]:
        """Pending jobs whose dependencies have all completed."""
        return [
            job for job in self._jobs.list()
            if job.status == JobStatus.PENDING and self.can_run(job).runnable
        ]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def dependencies(self, job_id: int) -> list[tuple[int, Job | None]]:
        """``(id, job-or-None)`` for each dependency, in insertion order."""
        job = self._require(job_id)
        return [(dep_id, self._jobs.find(dep_id)) for dep_id in job.depends_on]

    def dependents(self, job_id: int) -> list[tuple[int, Job | None]]:
        """``(id, job-or-None)`` for each job waiting on ``job_id``."""
        job = self._require(job_id)
        return [(dep_id, self._jobs.find(dep_id)) for dep_id in job.dependents]

    def check_consistency(self, jobs: Iterable[Job] | None = None) -> None:
        """Assert that every edge is mirrored on both sides."""
        for job in jobs if jobs is not None else self._jobs.list():
            assert job.id not in job.depends_on, f"job {job.id} depends on itself"
            assert len(set(job.depends_on)) == len(job.depends_on), f"job {job.id} has duplicate edges"
            for dep_id in job.depends_on:
                dependency = self._jobs.find(dep_id)
                if dependency is not None:
                    assert job.id in dependency.dependents, f"edge {job.id}->{dep_id} not mirrored"
            for dependent_id in job.dependents:
                dependent = self._jobs.find(dependent_id)
                if dependent is not None:
                    assert job.id in dependent.depends_on, f"edge {dependent_id}->{job.id} not mirrored"

    def _dependencies_of(self, job_id: int) -> list[int]:
        job = self._jobs.find(job_id)
        return list(job.depends_on) if job else []

    def _require(self, job_id: int) -> Job:
        job = self._jobs.find(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job


__all__ = [
    "DependencyGraph",
    "JobLookup",
    "Readiness",
    "ReadinessState",
    "MAX_DEPENDENCIES",
    "WARN_DEPENDENCIES",
]
