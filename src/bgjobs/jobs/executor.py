"""
Job executor.

Turns registry jobs into running external processes, routes process
output into the job's output sink and reports process exit back to the
registry, which then propagates to dependents.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from functools import partial

from ..errors import JobNotRunningError, OutputReadError, ProcessSpawnError
from ..events import JobEvent, JobEventType
from ..logging import get_logger, timed, truncate_for_log
from ..output import OutputSink
from ..process import ProcessRunner
from .registry import JobRegistry
from .types import Job, JobStatus, PipelineInfo

logger = get_logger(__name__)

DEFAULT_STDERR_PREFIX = "[ERROR] "


class JobExecutor:
    """Starts, cancels and supervises jobs.

    The executor registers itself as the registry's launcher, so
    dependents released by propagation are started through the same path
    as jobs started directly.
    """

    def __init__(
        self,
        registry: JobRegistry,
        runner: ProcessRunner,
        sink: OutputSink,
        *,
        interpreter: str = "Rscript",
        interpreter_args: Sequence[str] = (),
        stderr_prefix: str = DEFAULT_STDERR_PREFIX,
        completion_banner: bool = True,
    ):
        self._registry = registry
        self._runner = runner
        self._sink = sink
        self.interpreter = interpreter
        self.interpreter_args = list(interpreter_args)
        self.stderr_prefix = stderr_prefix
        self.completion_banner = completion_banner
        registry.attach_launcher(self._launch)

    @property
    def registry(self) -> JobRegistry:
        return self._registry

    @property
    def sink(self) -> OutputSink:
        return self._sink

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(
        self,
        script: str,
        *,
        depends_on: Iterable[int] | None = None,
        pipeline: PipelineInfo | None = None,
    ) -> Job:
        """Create a job and start it, or leave it pending on its dependencies.

        A job whose dependencies are already settled at creation time is
        started (or skipped) right away.

        Raises:
            ScriptInvalidError: The script was rejected
            JobNotFoundError / DependencyError: A dependency edge was rejected
            ProcessSpawnError: The process could not be started; the job is
                removed again
        """
        job = self._registry.create_job(script, depends_on=depends_on or (), pipeline=pipeline)

        if job.status == JobStatus.PENDING:
            logger.info(
                f"Job {job.id} created (waiting for: {', '.join(map(str, job.depends_on))})",
                job_id=job.id,
            )
            self._registry.reevaluate(job.id)
            return job

        try:
            self._execute(job)
        except ProcessSpawnError as exc:
            exc.job_id = job.id
            self._registry.discard(job)
            logger.log_error(exc, f"Failed to start job {job.id}; removed")
            raise

        logger.info(f"Started job {job.id}: {job.name}", job_id=job.id)
        return job

    def cancel(self, job_id: int) -> Job:
        """Terminate a running job and mark it cancelled immediately.

        A later exit notification for the job is discarded.

        Raises:
            JobNotFoundError: If the job doesn't exist
            JobNotRunningError: If the job is not running
        """
        job = self._registry.get(job_id)
        if not job.is_running:
            raise JobNotRunningError(job_id, job.status.value)

        handle = job.process
        if handle is not None:
            try:
                self._runner.terminate(handle)
            except OSError as exc:
                logger.log_error(exc, f"Termination request for job {job_id} failed")

        self._registry.mark_cancelled(job_id)
        logger.info(f"Job {job_id} cancelled", job_id=job_id)
        return job

    def read_output(self, job_id: int) -> str | None:
        """Captured output for a job, or None if it has none yet.

        Raises:
            JobNotFoundError: If the job doesn't exist
            OutputReadError: The output could not be read or decoded
        """
        job = self._registry.get(job_id)
        if job.output_ref is None or not self._sink.exists(job.output_ref):
            return None
        try:
            return self._sink.read(job.output_ref)
        except (OSError, UnicodeDecodeError) as exc:
            raise OutputReadError(job_id, job.output_ref, exc) from exc

    # ------------------------------------------------------------------
    # Launching
    # ------------------------------------------------------------------

    def _launch(self, job: Job) -> None:
        """Launcher used by propagation: a spawn failure fails the job."""
        try:
            self._execute(job)
        except ProcessSpawnError as exc:
            logger.log_error(exc, f"Failed to start dependent job {job.id}", job_id=job.id)
            if job.is_running:
                self._registry.mark_failed(job.id, error=exc.message)

    def _execute(self, job: Job) -> None:
        previous = job.mark_running()
        logger.log_transition(job.id, previous.value, job.status.value)

        try:
            job.output_ref = self._sink.create(job.id)
        except OSError as exc:
            raise ProcessSpawnError(
                f"Failed to create output for job {job.id}: {exc}",
                job_id=job.id,
                cause=exc,
            ) from exc

        try:
            with timed() as timer:
                handle = self._runner.spawn(
                    self.interpreter,
                    [*self.interpreter_args, job.script],
                    on_stdout=partial(self._on_output, job.id, False),
                    on_stderr=partial(self._on_output, job.id, True),
                    on_exit=partial(self._on_exit, job.id),
                )
        except OSError as exc:
            raise ProcessSpawnError(str(exc), command=self.interpreter, job_id=job.id, cause=exc) from exc

        job.process = handle
        job.pid = handle.pid
        logger.debug(
            "Process spawned",
            job_id=job.id,
            pid=handle.pid,
            spawn_ms=round(timer.elapsed_ms, 2),
        )
        self._registry.publish(JobEvent.for_job(JobEventType.JOB_STARTED, job))

    # ------------------------------------------------------------------
    # Runner callbacks
    # ------------------------------------------------------------------

    def _on_output(self, job_id: int, is_error: bool, text: str) -> None:
        job = self._registry.find(job_id)
        if job is None or job.output_ref is None:
            return

        chunk = f"{self.stderr_prefix}{text}" if is_error else text
        try:
            self._sink.append(job.output_ref, chunk)
        except OSError as exc:
            logger.log_error(exc, f"Failed to append output for job {job_id}", job_id=job_id)
            return
        logger.debug(
            "Output captured",
            job_id=job_id,
            stream="stderr" if is_error else "stdout",
            text=truncate_for_log(text, 80),
        )
        self._registry.publish_output(job_id, is_error, text)

    def _on_exit(self, job_id: int, exit_code: int | None) -> None:
        job = self._registry.find(job_id)
        if job is None or job.status != JobStatus.RUNNING:
            logger.debug(
                "Discarding exit notification",
                job_id=job_id,
                exit_code=exit_code,
                status=job.status.value if job else None,
            )
            return

        if job.pid is None and job.process is not None:
            job.pid = job.process.pid

        if self.completion_banner and job.output_ref is not None:
            shown = exit_code if exit_code is not None else "unknown"
            try:
                self._sink.append(job.output_ref, f"\n--- Job completed with exit code: {shown} ---\n")
            except OSError as exc:
                logger.log_error(exc, f"Failed to append output for job {job_id}", job_id=job_id)

        if exit_code == 0:
            self._registry.mark_completed(job_id, exit_code)
            logger.info(f"Job {job_id} ({job.name}) completed successfully", job_id=job_id)
        else:
            reason = "unresolved exit code" if exit_code is None else f"exit code {exit_code}"
            self._registry.mark_failed(job_id, exit_code=exit_code, error=f"Process failed with {reason}")
            logger.warning(f"Job {job_id} ({job.name}) failed with {reason}", job_id=job_id)


__all__ = ["JobExecutor", "DEFAULT_STDERR_PREFIX"]
