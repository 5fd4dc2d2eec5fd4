"""
Process runner: spawns and supervises external commands.

The scheduler core only sees the ``ProcessRunner`` contract. Callbacks
are invoked on the event loop thread, one at a time, so they may mutate
registry state directly.
"""

from __future__ import annotations

import asyncio
import codecs
import shutil
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..errors import ProcessSpawnError
from ..logging import get_logger

logger = get_logger(__name__)

OutputCallback = Callable[[str], None]
ExitCallback = Callable[[int | None], None]

STREAM_LIMIT = 1024 * 1024


@dataclass(eq=False)
class ProcessHandle:
    """Opaque reference to a spawned process."""
    command: str
    args: list[str] = field(default_factory=list)
    pid: int | None = None
    returncode: int | None = None
    terminate_requested: bool = False
    process: Any = None
    task: asyncio.Task | None = None

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()


class ProcessRunner(ABC):
    """Abstract process supervisor."""

    @abstractmethod
    def spawn(
        self,
        command: str,
        args: Sequence[str],
        *,
        on_stdout: OutputCallback,
        on_stderr: OutputCallback,
        on_exit: ExitCallback,
    ) -> ProcessHandle:
        """Start ``command`` and return immediately.

        Callbacks are never invoked before ``spawn`` returns.

        Raises:
            ProcessSpawnError: If the process cannot be started
        """
        ...

    @abstractmethod
    def terminate(self, handle: ProcessHandle) -> None:
        """Request termination. Does not wait for the process to exit."""
        ...


class AsyncioProcessRunner(ProcessRunner):
    """Runs commands with ``asyncio.create_subprocess_exec``.

    Output is delivered line by line with line endings preserved; a line
    longer than the stream limit arrives in several pieces. The exit
    callback always fires once, with None when the return code could not
    be resolved.
    """

    def __init__(
        self,
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
    ):
        self.cwd = cwd
        self.env = dict(env) if env is not None else None
        self._handles: set[ProcessHandle] = set()

    def spawn(
        self,
        command: str,
        args: Sequence[str],
        *,
        on_stdout: OutputCallback,
        on_stderr: OutputCallback,
        on_exit: ExitCallback,
    ) -> ProcessHandle:
        executable = shutil.which(command)
        if executable is None:
            raise ProcessSpawnError(f"Executable not found: {command}", command=command)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise ProcessSpawnError(
                "Spawning requires a running event loop",
                command=command,
                cause=exc,
            ) from exc

        handle = ProcessHandle(command=command, args=list(args))
        handle.task = loop.create_task(
            self._run(handle, executable, on_stdout, on_stderr, on_exit)
        )
        self._handles.add(handle)
        handle.task.add_done_callback(lambda _: self._handles.discard(handle))
        return handle

    async def _run(
        self,
        handle: ProcessHandle,
        executable: str,
        on_stdout: OutputCallback,
        on_stderr: OutputCallback,
        on_exit: ExitCallback,
    ) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *handle.args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                env=self.env,
                limit=STREAM_LIMIT,
            )
        except OSError as exc:
            logger.log_error(exc, f"Failed to start {handle.command}")
            self._safe_call(on_stderr, f"Failed to start {handle.command}: {exc}\n")
            self._safe_call(on_exit, None)
            return

        handle.process = process
        handle.pid = process.pid
        if handle.terminate_requested:
            self._signal(process)

        returncode: int | None = None
        try:
            await asyncio.gather(
                self._pump(process.stdout, on_stdout),
                self._pump(process.stderr, on_stderr),
            )
            returncode = await process.wait()
        except Exception as exc:
            logger.log_error(exc, f"Output capture failed for {handle.command}", exc_info=True)
            self._signal(process)
        finally:
            handle.returncode = returncode
            self._safe_call(on_exit, returncode)

    async def _pump(self, stream: asyncio.StreamReader | None, callback: OutputCallback) -> None:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")("replace")
        while True:
            try:
                chunk = await stream.readuntil(b"\n")
            except asyncio.IncompleteReadError as exc:
                chunk = exc.partial
            except asyncio.LimitOverrunError as exc:
                # Line longer than the buffer limit; the data is still buffered.
                chunk = await stream.read(exc.consumed)
            if not chunk:
                break
            text = decoder.decode(chunk)
            if text:
                self._safe_call(callback, text)
        tail = decoder.decode(b"", final=True)
        if tail:
            self._safe_call(callback, tail)

    @staticmethod
    def _safe_call(callback: Callable[..., None], *args: Any) -> None:
        try:
            callback(*args)
        except Exception as exc:
            logger.log_error(exc, "Process callback failed", exc_info=True)

    def terminate(self, handle: ProcessHandle) -> None:
        handle.terminate_requested = True
        if handle.process is not None:
            self._signal(handle.process)

    @staticmethod
    def _signal(process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            pass

    async def wait(self, handle: ProcessHandle, timeout: float | None = None) -> int | None:
        """Wait for a spawned process to be fully reported."""
        if handle.task is not None:
            await asyncio.wait_for(asyncio.shield(handle.task), timeout=timeout)
        return handle.returncode

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Terminate every live process and wait for their exit callbacks."""
        handles = list(self._handles)
        for handle in handles:
            self.terminate(handle)
        tasks = [h.task for h in handles if h.task is not None]
        if tasks:
            await asyncio.wait(tasks, timeout=timeout)

    @property
    def active_count(self) -> int:
        return len(self._handles)


__all__ = [
    "ProcessHandle",
    "ProcessRunner",
    "AsyncioProcessRunner",
    "OutputCallback",
    "ExitCallback",
]
