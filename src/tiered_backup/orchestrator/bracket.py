"""
Write bracket around the archival window.

Before archiving, pending writes are flushed and further writes are
suspended; afterwards writes are resumed. The commands are an injected
capability executed on a designated synchronous context, so the core
does not depend on any particular host command protocol.
"""

import logging
import shlex
import subprocess
from abc import ABC, abstractmethod
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Sequence

logger = logging.getLogger(__name__)

DEFAULT_FREEZE_COMMANDS = ("save-all flush", "save-off")
DEFAULT_RESUME_COMMANDS = ("save-on",)


class SyncContext:
    """
    The designated execution context for privileged commands.

    Calls are marshalled onto the context's executor and the caller
    blocks until they complete. By default the context is a dedicated
    single worker thread; a host can supply its own executor (for
    example one bound to its main loop).
    """

    def __init__(self, executor: Executor | None = None, timeout: float | None = None):
        """
        Initialize the context.

        Args:
            executor: Host executor; a single-thread executor is created if omitted
            timeout: Maximum seconds to wait for a marshalled call
        """
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="backup-primary"
        )
        self._timeout = timeout

    def call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """Run ``fn`` on the context and wait for its result."""
        future = self._executor.submit(fn, *args, **kwargs)
        return future.result(timeout=self._timeout)

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)


class WriteBracket(ABC):
    """Freeze/resume capability invoked around the archival step."""

    @abstractmethod
    def freeze(self) -> None:
        """Flush pending writes and suspend further writes."""

    @abstractmethod
    def resume(self) -> None:
        """Resume writes."""


class NoopBracket(WriteBracket):
    """Bracket for sources that need no write suspension."""

    def freeze(self) -> None:
        pass

    def resume(self) -> None:
        pass


class CallableBracket(WriteBracket):
    """Bracket backed by two plain functions supplied by the host."""

    def __init__(self, freeze: Callable[[], Any], resume: Callable[[], Any]):
        self._freeze = freeze
        self._resume = resume

    def freeze(self) -> None:
        self._freeze()

    def resume(self) -> None:
        self._resume()


class CommandBracket(WriteBracket):
    """
    Bracket that issues named commands through a runner.

    Freezing issues every freeze command in order ("flush all pending
    writes", then "suspend further writes"); resuming issues the resume
    commands.
    """

    def __init__(
        self,
        runner: Callable[[str], Any],
        freeze_commands: Sequence[str] = DEFAULT_FREEZE_COMMANDS,
        resume_commands: Sequence[str] = DEFAULT_RESUME_COMMANDS,
    ):
        self._runner = runner
        self.freeze_commands = list(freeze_commands)
        self.resume_commands = list(resume_commands)

    def freeze(self) -> None:
        for command in self.freeze_commands:
            logger.debug(f"Issuing freeze command: {command}")
            self._runner(command)

    def resume(self) -> None:
        for command in self.resume_commands:
            logger.debug(f"Issuing resume command: {command}")
            self._runner(command)


class ShellCommandRunner:
    """Runs a bracket command as a subprocess, raising on non-zero exit."""

    def __init__(self, timeout: float = 60.0):
        self.timeout = timeout

    def __call__(self, command: str) -> str:
        result = subprocess.run(
            shlex.split(command),
            capture_output=True,
            text=True,
            timeout=self.timeout,
            check=True,
            shell=False,
        )
        return result.stdout
