"""
Tests for the job executor using the fake process runner.
"""

import logging

import pytest

from bgjobs.errors import (
    ErrorCode,
    JobNotFoundError,
    JobNotRunningError,
    ProcessSpawnError,
    ScriptInvalidError,
)
from bgjobs.events import JobEventType
from bgjobs.jobs import JobExecutor, JobStatus, PipelineInfo


class TestStart:
    """Test starting jobs."""

    def test_start_spawns_interpreter(self, executor, runner, make_script):
        script = make_script()
        job = executor.start(script)

        assert job.status == JobStatus.RUNNING
        assert job.started_at is not None
        assert job.pid == runner.spawns[0].handle.pid
        assert job.process is runner.spawns[0].handle
        assert runner.spawns[0].command == "Rscript"
        assert runner.spawns[0].args == [script]

    def test_interpreter_args(self, registry, runner, sink, make_script):
        executor = JobExecutor(
            registry, runner, sink,
            interpreter="Rscript",
            interpreter_args=["--vanilla"],
        )
        script = make_script()
        executor.start(script)
        assert runner.spawns[0].args == ["--vanilla", script]

    def test_start_with_dependencies_stays_pending(self, executor, runner, scripts):
        first = executor.start(scripts[0])
        second = executor.start(scripts[1], depends_on=[first.id])

        assert second.status == JobStatus.PENDING
        assert second.started_at is None
        assert runner.spawned_scripts() == [scripts[0]]

    def test_start_after_settled_dependency_runs_immediately(self, executor, runner, scripts):
        first = executor.start(scripts[0])
        runner.exit(scripts[0], 0)

        second = executor.start(scripts[1], depends_on=[first.id])

        assert second.status == JobStatus.RUNNING
        assert runner.spawned_scripts() == [scripts[0], scripts[1]]

    def test_start_after_failed_dependency_is_skipped(self, executor, runner, scripts):
        first = executor.start(scripts[0])
        runner.exit(scripts[0], 1)

        second = executor.start(scripts[1], depends_on=[first.id])

        assert second.status == JobStatus.SKIPPED
        assert runner.spawned_scripts() == [scripts[0]]

    def test_invalid_script(self, executor, runner, tmp_path):
        with pytest.raises(ScriptInvalidError):
            executor.start(str(tmp_path / "nope.R"))
        assert runner.spawns == []

    def test_bad_dependency_rolls_back(self, executor, runner, scripts):
        with pytest.raises(JobNotFoundError):
            executor.start(scripts[0], depends_on=[9])
        assert executor.registry.list() == []
        assert runner.spawns == []

    def test_spawn_failure_removes_job(self, executor, runner, make_script, captured_events):
        runner.fail_spawn = True
        with pytest.raises(ProcessSpawnError) as exc_info:
            executor.start(make_script())
        assert exc_info.value.code == ErrorCode.PROCESS_SPAWN_FAILED
        assert exc_info.value.job_id == 1
        assert executor.registry.list() == []
        assert [e.type for e in captured_events] == [JobEventType.JOB_CREATED]

    def test_started_event_follows_spawn(self, executor, runner, make_script, captured_events, caplog):
        with caplog.at_level(logging.DEBUG, logger="bgjobs"):
            job = executor.start(make_script())

        started = captured_events[-1]
        assert started.type == JobEventType.JOB_STARTED
        assert started.job.pid == runner.spawns[0].handle.pid
        spawned = [r for r in caplog.records if r.getMessage() == "Process spawned"]
        assert spawned[0].fields["job_id"] == job.id
        assert spawned[0].fields["spawn_ms"] >= 0

    def test_pipeline_metadata(self, executor, make_script):
        job = executor.start(make_script(), pipeline=PipelineInfo("etl", 1, 2))
        assert job.pipeline.label() == "etl (1/2)"

    def test_lifecycle_events(self, executor, runner, make_script, captured_events):
        script = make_script()
        job = executor.start(script)
        runner.emit_stdout(script, "row 1\n")
        runner.exit(script, 0)

        assert [e.type for e in captured_events] == [
            JobEventType.JOB_CREATED,
            JobEventType.JOB_STARTED,
            JobEventType.JOB_OUTPUT,
            JobEventType.JOB_FINISHED,
        ]
        assert all(e.job_id == job.id for e in captured_events)


class TestOutput:
    """Test output capture."""

    def test_stdout_verbatim_stderr_prefixed(self, executor, runner, make_script):
        script = make_script()
        job = executor.start(script)
        runner.emit_stdout(script, "hello\n")
        runner.emit_stderr(script, "warning: x\n")

        assert executor.read_output(job.id) == "hello\n[ERROR] warning: x\n"

    def test_long_output_truncated_in_debug_log(self, executor, runner, make_script, caplog):
        script = make_script()
        job = executor.start(script)

        with caplog.at_level(logging.DEBUG, logger="bgjobs"):
            runner.emit_stdout(script, "z" * 500)

        captured = [r for r in caplog.records if r.getMessage() == "Output captured"]
        assert captured[0].fields["stream"] == "stdout"
        assert "500 chars total" in captured[0].fields["text"]
        assert executor.read_output(job.id) == "z" * 500

    def test_custom_stderr_prefix(self, registry, runner, sink, make_script):
        executor = JobExecutor(registry, runner, sink, stderr_prefix="! ")
        script = make_script()
        job = executor.start(script)
        runner.emit_stderr(script, "oops\n")
        assert executor.read_output(job.id) == "! oops\n"

    def test_output_events(self, executor, runner, make_script, event_bus):
        outputs = []
        event_bus.subscribe(JobEventType.JOB_OUTPUT, outputs.append)
        script = make_script()
        job = executor.start(script)

        runner.emit_stdout(script, "a\n")
        runner.emit_stderr(script, "b\n")

        assert [(e.job_id, e.is_error, e.text) for e in outputs] == [
            (job.id, False, "a\n"),
            (job.id, True, "b\n"),
        ]

    def test_completion_banner(self, executor, runner, make_script):
        script = make_script()
        job = executor.start(script)
        runner.emit_stdout(script, "done\n")
        runner.exit(script, 0)

        assert executor.read_output(job.id) == "done\n\n--- Job completed with exit code: 0 ---\n"

    def test_banner_disabled(self, registry, runner, sink, make_script):
        executor = JobExecutor(registry, runner, sink, completion_banner=False)
        script = make_script()
        job = executor.start(script)
        runner.exit(script, 0)
        assert executor.read_output(job.id) == ""

    def test_output_for_missing_job(self, executor):
        with pytest.raises(JobNotFoundError):
            executor.read_output(4)

    def test_output_before_start(self, executor, scripts):
        first = executor.start(scripts[0])
        second = executor.start(scripts[1], depends_on=[first.id])
        assert executor.read_output(second.id) is None


class TestExit:
    """Test exit handling."""

    def test_exit_zero_completes(self, executor, runner, make_script):
        script = make_script()
        job = executor.start(script)
        runner.exit(script, 0)
        assert job.status == JobStatus.COMPLETED
        assert job.exit_code == 0
        assert job.ended_at is not None

    def test_nonzero_exit_fails(self, executor, runner, make_script):
        script = make_script()
        job = executor.start(script)
        runner.exit(script, 3)
        assert job.status == JobStatus.FAILED
        assert job.exit_code == 3
        assert "exit code 3" in job.error

    def test_unresolved_exit_fails(self, executor, runner, make_script):
        script = make_script()
        job = executor.start(script)
        runner.exit(script, None)

        assert job.status == JobStatus.FAILED
        assert job.exit_code is None
        assert executor.read_output(job.id).endswith("exit code: unknown ---\n")

    def test_exit_for_deleted_job_ignored(self, executor, runner, make_script):
        script = make_script()
        job = executor.start(script)
        executor.cancel(job.id)
        executor.registry.delete(job.id)
        runner.exit(script, 0)
        assert executor.registry.list() == []


class TestCancel:
    """Test cancellation."""

    def test_cancel_running_job(self, executor, runner, make_script):
        job = executor.start(make_script())
        handle = job.process

        executor.cancel(job.id)

        assert job.status == JobStatus.CANCELLED
        assert job.ended_at is not None
        assert runner.terminated == [handle]

    def test_late_exit_after_cancel_ignored(self, executor, runner, make_script):
        script = make_script()
        job = executor.start(script)
        executor.cancel(job.id)

        runner.exit(script, 0)

        assert job.status == JobStatus.CANCELLED
        assert job.exit_code is None
        assert "Job completed" not in executor.read_output(job.id)

    def test_cancel_not_running(self, executor, scripts):
        first = executor.start(scripts[0])
        second = executor.start(scripts[1], depends_on=[first.id])
        with pytest.raises(JobNotRunningError) as exc_info:
            executor.cancel(second.id)
        assert exc_info.value.status == "pending"
        assert second.status == JobStatus.PENDING

    def test_cancel_missing(self, executor):
        with pytest.raises(JobNotFoundError):
            executor.cancel(12)

    def test_cancel_skips_dependents(self, executor, runner, scripts):
        first = executor.start(scripts[0])
        second = executor.start(scripts[1], depends_on=[first.id])
        executor.cancel(first.id)
        assert second.status == JobStatus.SKIPPED
        assert "cancelled" in second.skip_reason


class TestPipelines:
    """End-to-end dependency scenarios."""

    def test_chain_runs_in_order(self, executor, runner, scripts):
        one = executor.start(scripts[0])
        two = executor.start(scripts[1], depends_on=[one.id])
        three = executor.start(scripts[2], depends_on=[two.id])

        runner.exit(scripts[0], 0)
        assert two.status == JobStatus.RUNNING
        assert three.status == JobStatus.PENDING

        runner.exit(scripts[1], 0)
        assert three.status == JobStatus.RUNNING

        runner.exit(scripts[2], 0)
        assert [j.status for j in (one, two, three)] == [JobStatus.COMPLETED] * 3
        assert runner.spawned_scripts() == scripts

    def test_chain_failure_skips_downstream(self, executor, runner, scripts):
        one = executor.start(scripts[0])
        two = executor.start(scripts[1], depends_on=[one.id])
        three = executor.start(scripts[2], depends_on=[two.id])

        runner.exit(scripts[0], 1)

        assert one.status == JobStatus.FAILED
        assert two.status == JobStatus.SKIPPED
        assert three.status == JobStatus.SKIPPED
        assert runner.spawned_scripts() == [scripts[0]]

    def test_spawn_failure_during_propagation(self, executor, runner, scripts):
        one = executor.start(scripts[0])
        two = executor.start(scripts[1], depends_on=[one.id])
        three = executor.start(scripts[2], depends_on=[two.id])

        runner.fail_spawn = True
        runner.exit(scripts[0], 0)

        assert one.status == JobStatus.COMPLETED
        assert two.status == JobStatus.FAILED
        assert "Executable not found" in two.error
        assert three.status == JobStatus.SKIPPED
        assert two in executor.registry.list()
