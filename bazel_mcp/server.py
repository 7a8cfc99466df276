"""MCP Server wiring — list_tools, call_tool, and stdio entry point."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import SERVER_NAME, VERSION, Settings, load_settings
from .executor import CommandExecutor
from .logging_setup import configure_logging
from .session import WORKSPACE_MARKERS, WorkspaceSession, is_workspace_root
from .tools import TOOL_DEFINITIONS, handle_call

logger = logging.getLogger(__name__)


def create_session(settings: Settings, executor: CommandExecutor | None = None) -> WorkspaceSession:
    """Build the workspace session from resolved settings."""
    return WorkspaceSession(
        binary_path=settings.bazel_path,
        working_directory=settings.workspace_path,
        config_override=settings.workspace_config,
        executor=executor or CommandExecutor(),
    )


def create_server(session: WorkspaceSession) -> Server:
    """Create an MCP server whose tools all run against *session*."""
    server = Server(SERVER_NAME, version=VERSION)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """Declare all available tools."""
        logger.debug("Received ListToolsRequest")
        return [Tool(**defn) for defn in TOOL_DEFINITIONS]

    # Arguments are validated by bazel_mcp.contracts.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Run a Bazel tool; failures come back as an error payload."""
        text = await handle_call(session, name, arguments)
        return [TextContent(type="text", text=text)]

    return server


def log_startup(settings: Settings, argv: Sequence[str]) -> None:
    """Record the resolved configuration and check the initial workspace."""
    logger.info("Server starting. PWD: %s", os.getcwd())
    if settings.log_path:
        logger.info("Log path configured: %s", settings.log_path)
    logger.info("Starting %s %s...", SERVER_NAME, VERSION)
    logger.info("Using Bazel at: %s", settings.bazel_path)
    logger.info("Workspace path: %s", settings.workspace_path)
    if settings.workspace_config:
        logger.info("Workspace config: %s", settings.workspace_config)
    logger.debug("Command line arguments: %s", list(argv))

    try:
        is_workspace = is_workspace_root(settings.workspace_path)
    except OSError as exc:
        logger.error("Error checking workspace: %s", exc)
        return
    logger.info("Is Bazel workspace: %s", is_workspace)
    if not is_workspace:
        logger.error(
            "Warning: %s does not appear to be a Bazel workspace (none of %s found)",
            settings.workspace_path,
            ", ".join(WORKSPACE_MARKERS),
        )


# ── Entry point ───────────────────────────────────────────────────────────


async def main(argv: Sequence[str] | None = None) -> None:
    """Run the MCP server over stdio."""
    argv = list(sys.argv[1:] if argv is None else argv)
    settings = load_settings(argv)
    configure_logging(
        settings.log_path,
        debug=settings.debug,
        max_bytes=settings.log_max_bytes,
        backup_count=settings.log_backup_count,
    )
    log_startup(settings, argv)

    session = create_session(settings)
    server = create_server(session)

    logger.info("Connecting server to transport...")
    async with stdio_server() as (read_stream, write_stream):
        logger.info("%s running on stdio", SERVER_NAME)
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def cli() -> None:
    """Console-script entry point."""
    try:
        asyncio.run(main())
    except Exception:
        logger.critical("FATAL ERROR", exc_info=True)
        sys.exit(1)
