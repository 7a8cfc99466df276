"""Bazel MCP error hierarchy.

Every error carries typed fields (not just a message string),
supports ``to_dict()`` for serialisation into the tool error payload,
and has a readable ``__str__`` for logging.
"""

from __future__ import annotations


class BazelMCPError(Exception):
    """Base error for all Bazel MCP failures."""

    def __init__(self, message: str, *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "message": self.message, **self.detail}

    def __str__(self) -> str:
        return self.message


class LaunchError(BazelMCPError):
    """The Bazel binary could not be started (missing, not executable, ...)."""

    def __init__(self, binary: str, reason: str) -> None:
        self.binary = binary
        self.reason = reason
        super().__init__(
            f"Failed to launch '{binary}': {reason}",
            detail={"binary": binary, "reason": reason},
        )


class CommandFailed(BazelMCPError):
    """Bazel ran and exited with a nonzero status."""

    def __init__(self, exit_code: int, stderr: str, command: str = "") -> None:
        self.exit_code = exit_code
        self.stderr = stderr
        self.command = command
        super().__init__(
            f"Bazel command failed with code {exit_code}: {stderr}",
            detail={"exit_code": exit_code, "command": command},
        )


class WorkspaceValidationError(BazelMCPError):
    """A candidate workspace path failed a local precondition."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(message, detail={"path": path})


class WorkspaceNotFound(WorkspaceValidationError):
    """Path does not exist or is not a readable directory."""

    def __init__(self, path: str) -> None:
        super().__init__(path, f"Workspace path does not exist: {path}")


class NotAWorkspace(WorkspaceValidationError):
    """Directory exists but carries none of the workspace marker files."""

    def __init__(self, path: str, markers: tuple[str, ...] = ()) -> None:
        self.markers = markers
        msg = f"Path is not a recognized workspace root: {path}"
        if markers:
            msg += f" (expected one of: {', '.join(markers)})"
        super().__init__(path, msg)


class InvalidArguments(BazelMCPError):
    """Tool arguments are missing or have the wrong shape."""

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        super().__init__(message, detail={"tool_name": tool_name})


class ToolNotFound(BazelMCPError):
    """Requested tool name is not registered."""

    def __init__(self, tool_name: str, available_tools: list[str]) -> None:
        self.tool_name = tool_name
        self.available_tools = available_tools
        super().__init__(
            f"Unknown tool: {tool_name}. Available: {', '.join(available_tools)}",
            detail={"tool_name": tool_name, "available_tools": available_tools},
        )
