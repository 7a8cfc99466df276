"""MCP tool definitions and dispatch logic."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from .contracts import (
    BuildTargetRequest,
    FetchDependenciesRequest,
    ListTargetsRequest,
    QueryTargetRequest,
    SetWorkspacePathRequest,
    TestTargetRequest,
    parse_request,
)
from .errors import BazelMCPError, ToolNotFound
from .executor import OutputObserver
from .session import WorkspaceSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ToolSpec:
    name: str
    description: str
    request_model: type[BaseModel]


# ── Tool catalogue ────────────────────────────────────────────────────────

_TOOL_SPECS: tuple[_ToolSpec, ...] = (
    _ToolSpec(
        "bazel_build_target",
        "Build specified Bazel targets",
        BuildTargetRequest,
    ),
    _ToolSpec(
        "bazel_query_target",
        "Query the Bazel dependency graph for targets matching a pattern",
        QueryTargetRequest,
    ),
    _ToolSpec(
        "bazel_test_target",
        "Run Bazel tests for specified targets",
        TestTargetRequest,
    ),
    _ToolSpec(
        "bazel_list_targets",
        "List all available Bazel targets under a given path",
        ListTargetsRequest,
    ),
    _ToolSpec(
        "bazel_fetch_dependencies",
        (
            "Fetch Bazel external dependencies by building the given targets "
            "(all targets when none are given)"
        ),
        FetchDependenciesRequest,
    ),
    _ToolSpec(
        "bazel_set_workspace_path",
        "Set the current Bazel workspace path for subsequent commands",
        SetWorkspacePathRequest,
    ),
)

_SPECS_BY_NAME: dict[str, _ToolSpec] = {spec.name: spec for spec in _TOOL_SPECS}

# Older clients call the tools without the ``bazel_`` prefix.
TOOL_ALIASES: dict[str, str] = {
    spec.name.removeprefix("bazel_"): spec.name for spec in _TOOL_SPECS
}


def _build_tool_definition(spec: _ToolSpec) -> dict[str, Any]:
    """Build an MCP tool definition from the request model's JSON schema."""
    schema = spec.request_model.model_json_schema()
    properties = schema.get("properties", {})
    required = schema.get("required", [])

    clean_props: dict[str, Any] = {}
    for prop_name, prop_schema in properties.items():
        cleaned = {
            k: v
            for k, v in prop_schema.items()
            if k in ("type", "description", "items")
        }
        if "type" not in cleaned:
            cleaned["type"] = "string"
        clean_props[prop_name] = cleaned

    return {
        "name": spec.name,
        "description": spec.description,
        "inputSchema": {
            "type": "object",
            "properties": clean_props,
            "required": required,
        },
    }


TOOL_DEFINITIONS: list[dict[str, Any]] = [_build_tool_definition(s) for s in _TOOL_SPECS]


# ── Dispatch ──────────────────────────────────────────────────────────────


def resolve_tool_name(name: str) -> str:
    """Canonical tool name for *name*, accepting unprefixed aliases."""
    canonical = TOOL_ALIASES.get(name, name)
    if canonical not in _SPECS_BY_NAME:
        raise ToolNotFound(name, list(_SPECS_BY_NAME))
    return canonical


async def dispatch(
    session: WorkspaceSession,
    name: str,
    arguments: dict[str, Any] | None,
    observer: OutputObserver | None = None,
) -> str:
    """Validate *arguments* and run the matching session operation.

    Raises ``BazelMCPError`` subclasses on every expected failure.
    """
    canonical = resolve_tool_name(name)
    req = parse_request(_SPECS_BY_NAME[canonical].request_model, canonical, arguments)

    match canonical:
        case "bazel_build_target":
            return await session.build_targets(req.targets, req.additional_args, observer)
        case "bazel_query_target":
            return await session.query_target(req.pattern, req.additional_args, observer)
        case "bazel_test_target":
            return await session.test_targets(req.targets, req.additional_args, observer)
        case "bazel_list_targets":
            return await session.list_targets(req.path, req.additional_args, observer)
        case "bazel_fetch_dependencies":
            return await session.fetch_dependencies(
                req.targets, req.additional_args, observer,
            )
        case "bazel_set_workspace_path":
            return session.set_workspace_path(req.path)
        case _:
            raise ToolNotFound(name, list(_SPECS_BY_NAME))


async def handle_call(
    session: WorkspaceSession,
    name: str,
    arguments: dict[str, Any] | None,
    observer: OutputObserver | None = None,
) -> str:
    """Run a tool call and always return text — output or an error payload.

    Failures become ``{"error": "<message>"}`` JSON; nothing propagates to
    the protocol layer.
    """
    start = time.perf_counter()
    logger.info("[mcp:call]   %s  args=%s", name, _summarise(arguments or {}))
    try:
        text = await dispatch(session, name, arguments, observer)
    except BazelMCPError as exc:
        _log_result(name, start, error=str(exc))
        return json.dumps({"error": str(exc)})
    except Exception as exc:
        logger.exception("[mcp:result] %s  unexpected failure", name)
        return json.dumps({"error": str(exc) or type(exc).__name__})
    _log_result(name, start)
    return text


def _summarise(args: dict[str, Any], max_len: int = 200) -> str:
    """One-line summary of MCP tool arguments."""
    try:
        raw = ", ".join(f"{k}={v!r}" for k, v in args.items())
    except Exception:
        raw = str(args)
    return raw[:max_len] + ("…" if len(raw) > max_len else "")


def _log_result(name: str, start: float, error: str | None = None) -> None:
    elapsed = int((time.perf_counter() - start) * 1000)
    if error is not None:
        logger.error("[mcp:result] %s  ERROR (%dms): %s", name, elapsed, error)
    else:
        logger.info("[mcp:result] %s  OK (%dms)", name, elapsed)
