"""Tool request contracts — Pydantic models for every Bazel tool's arguments.

Arguments arriving over MCP are validated against these models before the
session is touched.  All models are frozen and ignore unknown keys.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bazel_mcp.errors import InvalidArguments


class _ToolRequest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class _PassthroughRequest(_ToolRequest):
    """Base for tools that forward extra flags to Bazel verbatim."""

    additional_args: list[str] = Field(
        default_factory=list,
        description=(
            "Extra Bazel flags appended after the command's own arguments "
            "(e.g. ['--config=ci', '--keep_going'])"
        ),
    )


class BuildTargetRequest(_PassthroughRequest):
    targets: list[str] = Field(
        ...,
        min_length=1,
        description="List of Bazel targets to build (e.g. ['//path/to:target'])",
    )


class QueryTargetRequest(_PassthroughRequest):
    pattern: str = Field(
        ...,
        min_length=1,
        description="Bazel query pattern (e.g. 'deps(//path/to:target)')",
    )


class TestTargetRequest(_PassthroughRequest):
    __test__ = False  # not a pytest class

    targets: list[str] = Field(
        ...,
        min_length=1,
        description="List of Bazel test targets to run (e.g. ['//path/to:test'])",
    )


class ListTargetsRequest(_PassthroughRequest):
    path: str = Field(
        ...,
        min_length=1,
        description=(
            "Path within the workspace to list targets for "
            "(e.g. '//path/to' or '//' for all targets)"
        ),
    )


class FetchDependenciesRequest(_PassthroughRequest):
    targets: list[str] = Field(
        default_factory=list,
        description=(
            "List of specific targets to fetch dependencies for "
            "(defaults to all targets, '//...')"
        ),
    )


class SetWorkspacePathRequest(_ToolRequest):
    path: str = Field(
        ...,
        min_length=1,
        description="The absolute path to the Bazel workspace directory",
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

_MISSING_TYPES = frozenset({"missing", "too_short", "string_too_short"})


def parse_request(
    model: type[_ToolRequest],
    tool_name: str,
    arguments: dict[str, Any] | None,
) -> Any:
    """Validate *arguments* against *model*.

    Raises ``InvalidArguments`` naming the first offending field —
    ``Missing required argument: targets`` for absent or empty values.
    """
    try:
        return model.model_validate(arguments or {})
    except ValidationError as exc:
        first = exc.errors()[0]
        field_name = str(first["loc"][0]) if first["loc"] else "arguments"
        if first["type"] in _MISSING_TYPES:
            message = f"Missing required argument: {field_name}"
        else:
            message = f"Invalid argument '{field_name}': {first['msg']}"
        raise InvalidArguments(tool_name, message) from exc
