"""
Output sinks for captured job output.

A sink hands out an opaque reference per job; the executor only ever
appends to it and passes the reference on to callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class OutputSink(ABC):
    """Abstract append-only store for job output."""

    @abstractmethod
    def create(self, job_id: int) -> str:
        """Create (or truncate) the output for a job and return its reference."""
        ...

    @abstractmethod
    def append(self, ref: str, text: str) -> None:
        ...

    @abstractmethod
    def read(self, ref: str) -> str:
        ...

    @abstractmethod
    def exists(self, ref: str) -> bool:
        ...


class FileOutputSink(OutputSink):
    """Writes each job's output to ``<output_dir>/job_<id>.txt``."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir).expanduser()

    def path_for(self, job_id: int) -> Path:
        return self.output_dir / f"job_{job_id}.txt"

    def create(self, job_id: int) -> str:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(job_id)
        path.write_text("", encoding="utf-8")
        return str(path)

    def append(self, ref: str, text: str) -> None:
        with open(ref, "a", encoding="utf-8") as f:
            f.write(text)

    def read(self, ref: str) -> str:
        return Path(ref).read_text(encoding="utf-8")

    def exists(self, ref: str) -> bool:
        return Path(ref).is_file()


class InMemoryOutputSink(OutputSink):
    """Keeps output in a dict. Suitable for testing."""

    def __init__(self):
        self._buffers: dict[str, list[str]] = {}

    def create(self, job_id: int) -> str:
        ref = f"memory://job_{job_id}"
        self._buffers[ref] = []
        return ref

    def append(self, ref: str, text: str) -> None:
        self._buffers.setdefault(ref, []).append(text)

    def read(self, ref: str) -> str:
        if ref not in self._buffers:
            raise FileNotFoundError(ref)
        return "".join(self._buffers[ref])

    def exists(self, ref: str) -> bool:
        return ref in self._buffers


__all__ = ["OutputSink", "FileOutputSink", "InMemoryOutputSink"]
