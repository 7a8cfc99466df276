"""Workspace session — the mutable Bazel context every tool call runs in.

A ``WorkspaceSession`` owns the binary path, the current workspace
directory and the optional bazelrc override.  The five command
operations shape their argument lists and hand an ``Invocation`` to the
``CommandExecutor``; ``set_workspace_path`` is the only state transition
and never spawns anything.

Usage::

    session = WorkspaceSession("bazel", "/src/repo")
    out = await session.build_targets(["//app:server"])
    session.set_workspace_path("/src/other-repo")

Each call reads the state when it builds its invocation.  There is no
locking: a switch that lands while a build is in flight does not affect
that build, only the calls that start afterwards.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field

from bazel_mcp.errors import NotAWorkspace, WorkspaceNotFound
from bazel_mcp.executor import CommandExecutor, Invocation, OutputObserver, RunResult

logger = logging.getLogger(__name__)

WORKSPACE_MARKERS: tuple[str, ...] = ("WORKSPACE", "WORKSPACE.bazel", "MODULE.bazel")
ALL_TARGETS: str = "//..."


def is_workspace_root(path: str) -> bool:
    """True if any workspace marker file sits directly under *path*."""
    return any(os.path.exists(os.path.join(path, m)) for m in WORKSPACE_MARKERS)


def recursive_pattern(path: str) -> str:
    """Turn a package path into a recursive target pattern.

    ``//`` → ``//...``, ``//foo`` → ``//foo/...``; a pattern that already
    ends in ``...`` is returned unchanged.
    """
    if path.endswith("..."):
        return path
    if path.endswith("/"):
        return f"{path}..."
    return f"{path}/..."


@dataclass
class WorkspaceSession:
    """Holds the Bazel context for the running MCP server instance."""

    binary_path: str
    working_directory: str
    config_override: str | None = None
    executor: CommandExecutor = field(default_factory=CommandExecutor, repr=False)

    def __post_init__(self) -> None:
        self.working_directory = os.path.abspath(self.working_directory)

    # ------------------------------------------------------------------
    # Command operations
    # ------------------------------------------------------------------

    async def build_targets(
        self,
        targets: Sequence[str],
        additional_args: Sequence[str] = (),
        observer: OutputObserver | None = None,
    ) -> str:
        result = await self._run("build", [*targets, *additional_args], observer)
        return _combined(result)

    async def query_target(
        self,
        pattern: str,
        additional_args: Sequence[str] = (),
        observer: OutputObserver | None = None,
    ) -> str:
        """Run ``bazel query``.  Some query modes report on stderr only."""
        result = await self._run("query", [pattern, *additional_args], observer)
        return result.stdout or result.stderr

    async def test_targets(
        self,
        targets: Sequence[str],
        additional_args: Sequence[str] = (),
        observer: OutputObserver | None = None,
    ) -> str:
        result = await self._run("test", [*targets, *additional_args], observer)
        return _combined(result)

    async def list_targets(
        self,
        path: str,
        additional_args: Sequence[str] = (),
        observer: OutputObserver | None = None,
    ) -> str:
        pattern = recursive_pattern(path)
        result = await self._run("query", [pattern, *additional_args], observer)
        return result.stdout

    async def fetch_dependencies(
        self,
        targets: Sequence[str] | None = None,
        additional_args: Sequence[str] = (),
        observer: OutputObserver | None = None,
    ) -> str:
        """Resolve external repositories as a side effect of ``bazel build``.

        Builds every target (``//...``) when *targets* is empty.
        """
        args = list(targets) if targets else [ALL_TARGETS]
        result = await self._run("build", [*args, *additional_args], observer)
        return _combined(result)

    # ------------------------------------------------------------------
    # State transition
    # ------------------------------------------------------------------

    def set_workspace_path(self, new_path: str) -> str:
        """Point the session at *new_path* after checking it locally.

        Raises
        ------
        WorkspaceNotFound
            *new_path* is not a readable directory.
        NotAWorkspace
            None of ``WORKSPACE_MARKERS`` is present under *new_path*.
        """
        if not os.path.isdir(new_path) or not os.access(new_path, os.R_OK | os.X_OK):
            raise WorkspaceNotFound(new_path)
        if not is_workspace_root(new_path):
            raise NotAWorkspace(new_path, WORKSPACE_MARKERS)

        old_path = self.working_directory
        self.working_directory = os.path.abspath(new_path)
        logger.info("Workspace path updated from %s to %s", old_path, self.working_directory)
        return f"Workspace path updated from {old_path} to {self.working_directory}"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def invocation(self, subcommand: str, args: Sequence[str]) -> Invocation:
        """Snapshot the current state into a fresh ``Invocation``."""
        return Invocation(
            binary=self.binary_path,
            subcommand=subcommand,
            args=tuple(args),
            cwd=self.working_directory,
            config_override=self.config_override,
        )

    async def _run(
        self,
        subcommand: str,
        args: Sequence[str],
        observer: OutputObserver | None,
    ) -> RunResult:
        return await self.executor.execute(self.invocation(subcommand, args), observer)


def _combined(result: RunResult) -> str:
    return f"{result.stdout}\n{result.stderr}"
