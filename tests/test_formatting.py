"""Tests for display helpers."""

import time

import pytest

from bgjobs.formatting import (
    dependency_report,
    format_duration,
    format_time,
    job_info,
    job_summary,
    status_icon,
    status_label,
)
from bgjobs.jobs import Job, JobStatus, PipelineInfo


class TestFormatDuration:
    """Test human-readable durations."""

    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (None, "0s"),
            (-1, "0s"),
            (0, "0.0s"),
            (2.34, "2.3s"),
            (83, "1m 23s"),
            (3600, "1h 0m"),
            (8100, "2h 15m"),
        ],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestFormatTime:
    """Test start time formatting."""

    def test_none(self):
        assert format_time(None) == ""

    def test_hh_mm_ss(self):
        ts = time.mktime((2024, 5, 1, 14, 3, 9, 0, 0, -1))
        assert format_time(ts) == "14:03:09"


class TestStatusDisplay:
    """Test status icons and labels."""

    def test_every_status_has_icon(self):
        for status in JobStatus:
            assert status_icon(status) != "?"

    def test_labels(self):
        assert status_label(JobStatus.COMPLETED) == "✓ Done"
        assert status_label(JobStatus.SKIPPED) == "⊘ Skipped"
        assert status_label(JobStatus.RUNNING) == "● Running"


class TestJobDescriptions:
    """Test multi-line job descriptions."""

    def test_summary_for_unstarted_job(self):
        job = Job(id=1, script="/x/a.R", status=JobStatus.PENDING)
        assert job_summary(job) == "[1] a.R - pending (started: -, duration: 0s)"

    def test_info_lines(self):
        job = Job(
            id=2,
            script="/x/b.R",
            status=JobStatus.SKIPPED,
            pipeline=PipelineInfo("etl"),
            skip_reason="Dependency job 1 (a.R) failed",
        )
        job.depends_on.append(1)
        lines = job_info(job)
        assert lines[0] == "Job Information:"
        assert "  Status: ⊘ Skipped" in lines
        assert "  PID: N/A" in lines
        assert "  Output: N/A" in lines
        assert "  Depends on: 1" in lines
        assert "  Pipeline: etl" in lines
        assert "  Skip reason: Dependency job 1 (a.R) failed" in lines

    def test_dependency_report(self):
        a = Job(id=1, script="/x/a.R", status=JobStatus.COMPLETED)
        b = Job(id=2, script="/x/b.R", status=JobStatus.PENDING)
        b.depends_on.extend([1, 5])
        jobs = {1: a, 2: b}

        lines = dependency_report(b, jobs.get)

        assert lines[0] == "Dependencies for Job 2 (b.R):"
        assert "  → Job 1: a.R [completed]" in lines
        assert "  → Job 5: (not found)" in lines
        assert lines[-1] == "Dependents: None"
