"""Shared test fixtures — reduces boilerplate across test modules.

Provides:
- ``FakeExecutor`` / ``fake_executor`` — records invocations, returns canned output
- ``RecordingSink`` — collects executor events
- ``workspace_dir`` / ``other_workspace`` — tmp dirs carrying a marker file
- ``session`` — a ``WorkspaceSession`` wired to ``fake_executor``
- ``isolated_config`` — clean env + cwd so settings tests see no host config
"""

from __future__ import annotations

from pathlib import Path

import pytest

from bazel_mcp.errors import BazelMCPError
from bazel_mcp.executor import ExecutionEvent, Invocation, RunResult
from bazel_mcp.session import WorkspaceSession


class FakeExecutor:
    """Stands in for ``CommandExecutor``; never spawns anything."""

    def __init__(
        self,
        stdout: str = "",
        stderr: str = "",
        error: BazelMCPError | None = None,
    ) -> None:
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.invocations: list[Invocation] = []
        self.observers: list[object] = []

    async def execute(self, invocation: Invocation, observer=None) -> RunResult:
        self.invocations.append(invocation)
        self.observers.append(observer)
        if self.error is not None:
            raise self.error
        return RunResult(stdout=self.stdout, stderr=self.stderr, command=invocation.command_line)

    @property
    def last(self) -> Invocation:
        return self.invocations[-1]


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[ExecutionEvent] = []

    def emit(self, event: ExecutionEvent) -> None:
        self.events.append(event)


class RecordingObserver:
    def __init__(self) -> None:
        self.chunks: list[tuple[str, str]] = []

    def on_output(self, text: str, stream: str) -> None:
        self.chunks.append((text, stream))


@pytest.fixture()
def workspace_dir(tmp_path: Path) -> Path:
    ws = tmp_path / "repo"
    ws.mkdir()
    (ws / "MODULE.bazel").write_text('module(name = "repo")\n', encoding="utf-8")
    return ws


@pytest.fixture()
def other_workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "legacy"
    ws.mkdir()
    (ws / "WORKSPACE").write_text("", encoding="utf-8")
    return ws


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor(stdout="out", stderr="err")


@pytest.fixture()
def session(workspace_dir: Path, fake_executor: FakeExecutor) -> WorkspaceSession:
    return WorkspaceSession(
        binary_path="bazel",
        working_directory=str(workspace_dir),
        executor=fake_executor,
    )


@pytest.fixture()
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty cwd and no MCP_* / DEBUG env vars."""
    cfg_dir = tmp_path / "cfg"
    cfg_dir.mkdir()
    monkeypatch.chdir(cfg_dir)
    for key in (
        "MCP_BAZEL_PATH",
        "MCP_WORKSPACE_PATH",
        "MCP_WORKSPACE_CONFIG",
        "MCP_LOG_PATH",
        "MCP_DEBUG",
        "DEBUG",
        "MCP_LOG_MAX_BYTES",
        "MCP_LOG_BACKUP_COUNT",
    ):
        monkeypatch.delenv(key, raising=False)
    return cfg_dir
