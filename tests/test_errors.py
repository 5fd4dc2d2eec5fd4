"""
Tests for the error taxonomy.
"""
import pytest

from bgjobs.errors import (
    ConfigError,
    CycleDetectedError,
    DependencyError,
    DependencyLimitError,
    DuplicateEdgeError,
    ErrorCode,
    InvalidTransitionError,
    JobError,
    JobNotFoundError,
    JobNotRunningError,
    JobRunningError,
    OutputReadError,
    ProcessSpawnError,
    ScriptInvalidError,
    SelfDependencyError,
)


class TestErrorCodes:
    """Test error code enumeration."""

    def test_error_codes_are_strings(self):
        for code in ErrorCode:
            assert code.value.startswith("ERR_")

    def test_codes_are_unique(self):
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))


class TestJobError:
    """Test the base error."""

    def test_str_includes_code(self):
        error = JobError("boom")
        assert str(error) == "[ERR_9000] boom"

    def test_code_override(self):
        error = JobError("boom", code=ErrorCode.CONFIG_ERROR)
        assert error.code == ErrorCode.CONFIG_ERROR

    def test_to_dict(self):
        cause = OSError("disk full")
        error = JobError("boom", job_id=3, cause=cause)
        data = error.to_dict()
        assert data == {
            "error_type": "JobError",
            "code": "ERR_9000",
            "message": "boom",
            "job_id": 3,
            "cause": "disk full",
        }


class TestErrorKinds:
    """Test each error kind carries its code and context."""

    @pytest.mark.parametrize(
        "error, code",
        [
            (JobNotFoundError(1), ErrorCode.NOT_FOUND),
            (SelfDependencyError(1), ErrorCode.SELF_DEPENDENCY),
            (DuplicateEdgeError(2, 1), ErrorCode.DUPLICATE_EDGE),
            (CycleDetectedError(1, 2), ErrorCode.CYCLE_DETECTED),
            (DependencyLimitError(1, 12, limit=10), ErrorCode.LIMIT_EXCEEDED),
            (JobRunningError(1), ErrorCode.JOB_RUNNING),
            (JobNotRunningError(1, "completed"), ErrorCode.NOT_RUNNING),
            (InvalidTransitionError(1, "completed", "running"), ErrorCode.INVALID_TRANSITION),
            (ScriptInvalidError("bad", script="x.txt"), ErrorCode.SCRIPT_INVALID),
            (ProcessSpawnError(command="Rscript"), ErrorCode.PROCESS_SPAWN_FAILED),
            (OutputReadError(1, "job_1.txt", OSError("gone")), ErrorCode.OUTPUT_READ_FAILED),
            (ConfigError("bad config"), ErrorCode.CONFIG_ERROR),
        ],
    )
    def test_codes(self, error, code):
        assert isinstance(error, JobError)
        assert error.code == code

    def test_dependency_errors_share_base(self):
        for error in (
            SelfDependencyError(1),
            DuplicateEdgeError(2, 1),
            CycleDetectedError(1, 2),
            DependencyLimitError(1, 2, limit=10),
        ):
            assert isinstance(error, DependencyError)

    def test_dependency_error_context(self):
        error = CycleDetectedError(1, 2)
        assert error.job_id == 1
        assert error.depends_on_id == 2
        assert error.to_dict()["depends_on_id"] == 2
        assert "would create a cycle" in error.message

    def test_limit_message(self):
        error = DependencyLimitError(4, 15, limit=10)
        assert error.limit == 10
        assert "Maximum dependencies limit (10)" in error.message

    def test_not_found_messages(self):
        assert JobNotFoundError(5).message == "Job not found: 5"
        assert JobNotFoundError(5, "Dependency job not found: 5").message.startswith("Dependency")

    def test_not_running_includes_status(self):
        error = JobNotRunningError(3, "pending")
        assert error.status == "pending"
        assert "(status: pending)" in error.message

    def test_spawn_error_defaults(self):
        error = ProcessSpawnError(command="Rscript", job_id=2)
        assert error.message == "Failed to start process"
        assert error.command == "Rscript"
        assert error.job_id == 2

    def test_errors_are_raisable(self):
        with pytest.raises(JobError):
            raise JobRunningError(1)
