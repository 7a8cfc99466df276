"""Bazel MCP server — run Bazel builds, queries and tests for an agent.

Public API
----------
Session::

    WorkspaceSession, WORKSPACE_MARKERS, is_workspace_root,
    recursive_pattern

Executor::

    CommandExecutor, Invocation, RunResult,
    EventSink, LoggingEventSink, OutputObserver,
    ExecutionEvent, CommandStartedEvent, OutputEvent,
    CommandExitedEvent, LaunchFailedEvent

Errors::

    BazelMCPError, LaunchError, CommandFailed,
    WorkspaceValidationError, WorkspaceNotFound, NotAWorkspace,
    InvalidArguments, ToolNotFound

Tools::

    TOOL_DEFINITIONS, dispatch, handle_call

Usage::

    # As a module:
    python -m bazel_mcp --workspace_path /src/repo

    # Or import and run:
    from bazel_mcp.server import main
    asyncio.run(main())
"""

from bazel_mcp.errors import (
    BazelMCPError,
    CommandFailed,
    InvalidArguments,
    LaunchError,
    NotAWorkspace,
    ToolNotFound,
    WorkspaceNotFound,
    WorkspaceValidationError,
)
from bazel_mcp.executor import (
    CommandExecutor,
    CommandExitedEvent,
    CommandStartedEvent,
    EventSink,
    ExecutionEvent,
    Invocation,
    LaunchFailedEvent,
    LoggingEventSink,
    OutputEvent,
    OutputObserver,
    RunResult,
)
from bazel_mcp.session import (
    WORKSPACE_MARKERS,
    WorkspaceSession,
    is_workspace_root,
    recursive_pattern,
)
from bazel_mcp.tools import TOOL_DEFINITIONS, dispatch, handle_call

__all__ = [
    # Session
    "WorkspaceSession",
    "WORKSPACE_MARKERS",
    "is_workspace_root",
    "recursive_pattern",
    # Executor
    "CommandExecutor",
    "Invocation",
    "RunResult",
    "EventSink",
    "LoggingEventSink",
    "OutputObserver",
    "ExecutionEvent",
    "CommandStartedEvent",
    "OutputEvent",
    "CommandExitedEvent",
    "LaunchFailedEvent",
    # Errors
    "BazelMCPError",
    "LaunchError",
    "CommandFailed",
    "WorkspaceValidationError",
    "WorkspaceNotFound",
    "NotAWorkspace",
    "InvalidArguments",
    "ToolNotFound",
    # Tools
    "TOOL_DEFINITIONS",
    "dispatch",
    "handle_call",
]
