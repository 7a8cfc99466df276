"""Command executor — streaming Bazel subprocess execution.

Provides ``CommandExecutor.execute()`` for running one Bazel invocation
and returning a structured ``RunResult``.  Output is decoded and handed
to an optional ``OutputObserver`` chunk by chunk while it is being
accumulated, and every step is mirrored to an ``EventSink``.

No timeouts, no retries, no truncation — the caller gets everything the
child wrote, or a typed error.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import shlex
import time
from dataclasses import dataclass
from typing import Literal, Protocol

from pydantic import BaseModel, ConfigDict, Field

from bazel_mcp.errors import CommandFailed, LaunchError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

READ_CHUNK_BYTES: int = 64 * 1024
CONFIG_OVERRIDE_FLAG: str = "--bazelrc"

StreamName = Literal["stdout", "stderr"]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Invocation(BaseModel):
    """One spawn-to-exit lifecycle of the Bazel binary, before it runs."""

    model_config = ConfigDict(frozen=True)

    binary: str = Field(..., description="Path or name of the Bazel binary")
    subcommand: str = Field(..., description="Bazel verb, e.g. 'build'")
    args: tuple[str, ...] = Field(default=(), description="Arguments after the verb")
    cwd: str = Field(..., description="Working directory for the child")
    config_override: str | None = Field(
        default=None,
        description="Alternate bazelrc, passed as a global flag",
    )

    @property
    def argv(self) -> list[str]:
        """Full argument vector, binary first."""
        global_flags = []
        if self.config_override:
            global_flags.append(f"{CONFIG_OVERRIDE_FLAG}={self.config_override}")
        return [self.binary, *global_flags, self.subcommand, *self.args]

    @property
    def command_line(self) -> str:
        return shlex.join(self.argv)


class RunResult(BaseModel):
    """Structured result of a successful invocation."""

    model_config = ConfigDict(frozen=True)

    exit_code: int = Field(default=0, description="Process exit code")
    stdout: str = Field(default="", description="Full captured stdout")
    stderr: str = Field(default="", description="Full captured stderr")
    duration_ms: int = Field(default=0, ge=0, description="Wall-clock duration in ms")
    command: str = Field(..., description="The command line that was executed")


# ---------------------------------------------------------------------------
# Event types — side channel for the log sink
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExecutionEvent:
    """Base class for events emitted while an invocation runs."""
    command: str


@dataclass(frozen=True)
class CommandStartedEvent(ExecutionEvent):
    """The child is about to be spawned."""
    cwd: str


@dataclass(frozen=True)
class OutputEvent(ExecutionEvent):
    """A decoded chunk arrived on one of the child's streams."""
    stream: StreamName
    text: str


@dataclass(frozen=True)
class CommandExitedEvent(ExecutionEvent):
    """The child exited (any code)."""
    exit_code: int
    duration_ms: int


@dataclass(frozen=True)
class LaunchFailedEvent(ExecutionEvent):
    """The child could not be started."""
    reason: str


class EventSink(Protocol):
    def emit(self, event: ExecutionEvent) -> None: ...


class OutputObserver(Protocol):
    """Receives output chunks in arrival order, tagged with their stream.

    ``on_output`` is never called after ``execute()`` has returned or
    raised.
    """

    def on_output(self, text: str, stream: StreamName) -> None: ...


class LoggingEventSink:
    """Writes execution events as line-oriented log records."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def emit(self, event: ExecutionEvent) -> None:
        match event:
            case CommandStartedEvent(command=command, cwd=cwd):
                self._log.info("Running command: %s in directory: %s", command, cwd)
            case OutputEvent(stream=stream, text=text):
                self._log.info("%s: %s", stream.upper(), text)
            case CommandExitedEvent(exit_code=code, duration_ms=elapsed):
                self._log.info(
                    "Command completed with exit code: %d (%dms)", code, elapsed,
                )
            case LaunchFailedEvent(reason=reason):
                self._log.error("Command execution error: %s", reason)


# ---------------------------------------------------------------------------
# Executor
# ---------------------------------------------------------------------------


class CommandExecutor:
    """Spawns Bazel, streams its output, and resolves with a ``RunResult``.

    Usage::

        executor = CommandExecutor()
        result = await executor.execute(
            Invocation(binary="bazel", subcommand="build",
                       args=("//app:server",), cwd="/src/repo"),
        )
    """

    def __init__(self, sink: EventSink | None = None) -> None:
        self.sink: EventSink = sink if sink is not None else LoggingEventSink()

    async def execute(
        self,
        invocation: Invocation,
        observer: OutputObserver | None = None,
    ) -> RunResult:
        """Run *invocation* to completion.

        Raises
        ------
        LaunchError
            When the binary cannot be started at all.
        CommandFailed
            When the binary exits nonzero.  Carries the exit code and
            the accumulated stderr.
        """
        command = invocation.command_line
        self._emit(CommandStartedEvent(command=command, cwd=invocation.cwd))
        start = time.perf_counter()

        try:
            proc = await asyncio.create_subprocess_exec(
                *invocation.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=invocation.cwd,
            )
        except OSError as exc:
            reason = exc.strerror or str(exc)
            if exc.filename:
                reason = f"{reason}: {exc.filename}"
            self._emit(LaunchFailedEvent(command=command, reason=reason))
            raise LaunchError(invocation.binary, reason) from exc

        stdout_parts: list[str] = []
        stderr_parts: list[str] = []
        pumps = [
            asyncio.ensure_future(
                self._pump(proc.stdout, "stdout", stdout_parts, command, observer)
            ),
            asyncio.ensure_future(
                self._pump(proc.stderr, "stderr", stderr_parts, command, observer)
            ),
        ]
        try:
            await asyncio.gather(*pumps)
            exit_code = await proc.wait()
        finally:
            # Cancelled or failed mid-stream: stop delivering, reap the child.
            for task in pumps:
                task.cancel()
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass  # already gone, wait() still reaps it
                await proc.wait()

        elapsed = int((time.perf_counter() - start) * 1000)
        self._emit(
            CommandExitedEvent(command=command, exit_code=exit_code, duration_ms=elapsed)
        )

        stdout = "".join(stdout_parts)
        stderr = "".join(stderr_parts)
        if exit_code != 0:
            logger.error("Bazel command failed with code %d: %s", exit_code, stderr)
            raise CommandFailed(exit_code, stderr, command)

        return RunResult(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=elapsed,
            command=command,
        )

    async def _pump(
        self,
        reader: asyncio.StreamReader,
        stream: StreamName,
        parts: list[str],
        command: str,
        observer: OutputObserver | None,
    ) -> None:
        """Drain *reader* until EOF, delivering each decoded chunk."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await reader.read(READ_CHUNK_BYTES)
            text = decoder.decode(data, final=not data)
            if text:
                parts.append(text)
                if observer is not None:
                    observer.on_output(text, stream)
                self._emit(OutputEvent(command=command, stream=stream, text=text))
            if not data:
                return

    def _emit(self, event: ExecutionEvent) -> None:
        try:
            self.sink.emit(event)
        except Exception:
            # Sink failures never reach the invocation.
            logger.debug("Event sink raised on %s", type(event).__name__, exc_info=True)
