"""Process runner contract and the asyncio implementation."""

from .runner import (
    AsyncioProcessRunner,
    ExitCallback,
    OutputCallback,
    ProcessHandle,
    ProcessRunner,
)

__all__ = [
    "AsyncioProcessRunner",
    "ExitCallback",
    "OutputCallback",
    "ProcessHandle",
    "ProcessRunner",
]
