"""
Runtime wiring.

Builds the event bus, validator, registry, executor, process runner and
output sink from a ``Settings`` object, and exposes the command surface.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .commands import JobCommands
from .config import Settings, get_settings
from .events import EventBus
from .jobs.executor import JobExecutor
from .jobs.registry import JobRegistry
from .logging import configure_logging, get_logger
from .output import FileOutputSink, OutputSink
from .process import AsyncioProcessRunner, ProcessRunner
from .validation import ScriptValidator

logger = get_logger(__name__)


@dataclass
class JobRuntime:
    """A fully wired scheduler."""

    settings: Settings
    events: EventBus
    registry: JobRegistry
    executor: JobExecutor
    runner: ProcessRunner
    sink: OutputSink
    commands: JobCommands = field(init=False)

    def __post_init__(self):
        self.commands = JobCommands(self.executor)

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Stop live processes and release queue subscribers."""
        shutdown = getattr(self.runner, "shutdown", None)
        if shutdown is not None:
            await shutdown(timeout)
        self.events.close()
        logger.info("Runtime shut down", jobs=self.registry.count())


def create_runtime(
    settings: Settings | None = None,
    *,
    runner: ProcessRunner | None = None,
    sink: OutputSink | None = None,
    validator: ScriptValidator | None = None,
    setup_logging: bool = True,
) -> JobRuntime:
    """
    Create a scheduler from settings.

    Args:
        settings: Settings to use (defaults to the global settings)
        runner: Process runner (defaults to AsyncioProcessRunner)
        sink: Output sink (defaults to FileOutputSink in ``output_dir``)
        validator: Script validator (defaults to the configured extensions)
        setup_logging: Apply the logging section to the ``bgjobs`` logger

    Returns:
        Configured JobRuntime
    """
    settings = settings or get_settings()
    scheduler = settings.scheduler

    if setup_logging:
        configure_logging(
            level=settings.logging.level,
            json_output=settings.logging.format == "json",
        )

    events = EventBus(
        max_queue_size=settings.events.max_queue_size,
        drop_policy=settings.events.drop_policy,
    )
    registry = JobRegistry(
        validator or ScriptValidator(scheduler.script_extensions),
        events,
        max_dependencies=scheduler.max_dependencies,
        warn_dependencies=scheduler.warn_dependencies,
    )
    runner = runner or AsyncioProcessRunner()
    sink = sink or FileOutputSink(scheduler.output_dir)
    executor = JobExecutor(
        registry,
        runner,
        sink,
        interpreter=scheduler.interpreter,
        interpreter_args=scheduler.interpreter_args,
        stderr_prefix=scheduler.stderr_prefix,
        completion_banner=scheduler.completion_banner,
    )

    logger.debug(
        "Runtime created",
        interpreter=scheduler.interpreter,
        output_dir=str(scheduler.output_dir),
    )
    return JobRuntime(
        settings=settings,
        events=events,
        registry=registry,
        executor=executor,
        runner=runner,
        sink=sink,
    )


__all__ = ["JobRuntime", "create_runtime"]
