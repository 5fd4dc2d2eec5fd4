"""
Shared test fixtures and fakes for bgjobs tests.

This module provides:
- FakeProcessRunner: records spawns and lets tests drive output/exit
- Script fixtures (real files under tmp_path)
- Wired registry / executor / command fixtures backed by in-memory output
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from bgjobs.commands import JobCommands
from bgjobs.errors import ProcessSpawnError
from bgjobs.events import EventBus, JobEvent
from bgjobs.jobs import JobExecutor, JobRegistry
from bgjobs.output import InMemoryOutputSink
from bgjobs.process import ExitCallback, OutputCallback, ProcessHandle, ProcessRunner
from bgjobs.validation import ScriptValidator

# =============================================================================
# Fake Process Runner
# =============================================================================


@dataclass
class FakeSpawn:
    """One recorded spawn call."""
    command: str
    args: list[str]
    handle: ProcessHandle
    on_stdout: OutputCallback
    on_stderr: OutputCallback
    on_exit: ExitCallback


@dataclass
class FakeProcessRunner(ProcessRunner):
    """Process runner that never starts anything.

    Tests emit output and exit notifications synchronously through the
    helpers below, keyed by the spawned script path.
    """
    spawns: list[FakeSpawn] = field(default_factory=list)
    terminated: list[ProcessHandle] = field(default_factory=list)
    fail_spawn: bool = False
    next_pid: int = 1000

    def spawn(
        self,
        command: str,
        args: Sequence[str],
        *,
        on_stdout: OutputCallback,
        on_stderr: OutputCallback,
        on_exit: ExitCallback,
    ) -> ProcessHandle:
        if self.fail_spawn:
            raise ProcessSpawnError(f"Executable not found: {command}", command=command)
        self.next_pid += 1
        handle = ProcessHandle(command=command, args=list(args), pid=self.next_pid)
        self.spawns.append(FakeSpawn(command, list(args), handle, on_stdout, on_stderr, on_exit))
        return handle

    def terminate(self, handle: ProcessHandle) -> None:
        handle.terminate_requested = True
        self.terminated.append(handle)

    def spawned_scripts(self) -> list[str]:
        return [spawn.args[-1] for spawn in self.spawns]

    def find(self, script: str | Path) -> FakeSpawn:
        for spawn in reversed(self.spawns):
            if spawn.args[-1] == str(script):
                return spawn
        raise AssertionError(f"{script} was never spawned")

    def emit_stdout(self, script: str | Path, text: str) -> None:
        self.find(script).on_stdout(text)

    def emit_stderr(self, script: str | Path, text: str) -> None:
        self.find(script).on_stderr(text)

    def exit(self, script: str | Path, code: int | None = 0) -> None:
        spawn = self.find(script)
        spawn.handle.returncode = code
        spawn.on_exit(code)


# =============================================================================
# Script Fixtures
# =============================================================================


@pytest.fixture
def make_script(tmp_path):
    """Factory creating an R script file and returning its absolute path."""

    def _make(name: str = "script.R", body: str = 'cat("hello\\n")\n') -> str:
        path = tmp_path / name
        path.write_text(body)
        return str(path)

    return _make


@pytest.fixture
def scripts(make_script):
    """Three scripts for pipeline scenarios."""
    return [make_script(f"step{i}.R") for i in (1, 2, 3)]


# =============================================================================
# Scheduler Fixtures
# =============================================================================


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def captured_events(event_bus):
    """Every event published on the bus, in order."""
    events: list[JobEvent] = []
    event_bus.subscribe(None, events.append)
    return events


@pytest.fixture
def registry(event_bus):
    return JobRegistry(ScriptValidator([".R"]), event_bus)


@pytest.fixture
def runner():
    return FakeProcessRunner()


@pytest.fixture
def sink():
    return InMemoryOutputSink()


@pytest.fixture
def executor(registry, runner, sink):
    return JobExecutor(registry, runner, sink, interpreter="Rscript")


@pytest.fixture
def commands(executor):
    return JobCommands(executor)
