"""Server configuration — CLI flags over env vars over a JSON file.

Uses ``pydantic-settings`` for env-var loading, type coercion and
``.env`` support.  Precedence per key, highest first:

  1. command-line flags (``--bazel_path`` ...), passed as init kwargs
  2. environment variables (``MCP_BAZEL_PATH`` ...)
  3. ``.env`` in the working directory
  4. ``.bazel-mcp-config.json`` in the working directory
  5. defaults
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

VERSION = "0.1.0"
SERVER_NAME = "Bazel MCP Server"
CONFIG_FILE_NAME = ".bazel-mcp-config.json"

_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off"})


class JsonConfigFileSource(PydanticBaseSettingsSource):
    """Reads settings from the JSON config file, if one is present.

    A file that is missing yields nothing; one that cannot be parsed is
    reported on stderr and ignored so the server still starts.
    """

    def __init__(self, settings_cls: type[BaseSettings], path: Path) -> None:
        super().__init__(settings_cls)
        self.path = path
        self._data = self._load()

    def _load(self) -> dict[str, Any]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            print(f"Error reading config file {self.path}: {exc}", file=sys.stderr)
            return {}
        if not isinstance(data, dict):
            print(f"Ignoring config file {self.path}: not a JSON object", file=sys.stderr)
            return {}
        return data

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        value = self._data.get(field_name)
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for field_name, field in self.settings_cls.model_fields.items():
            value, key, _ = self.get_field_value(field, field_name)
            if value is not None:
                values[key] = value
        return values


class Settings(BaseSettings):
    """Bazel MCP settings.

    Env vars use the ``MCP_`` prefix (``MCP_BAZEL_PATH``,
    ``MCP_WORKSPACE_PATH``, ``MCP_WORKSPACE_CONFIG``, ``MCP_LOG_PATH``);
    the debug flag also honours a bare ``DEBUG``.
    """

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        populate_by_name=True,
    )

    bazel_path: str = "bazel"
    workspace_path: str = Field(default_factory=os.getcwd)
    workspace_config: str | None = None
    log_path: str | None = None
    debug: bool = Field(
        default=False,
        validation_alias=AliasChoices("debug", "MCP_DEBUG", "DEBUG"),
    )

    # -- rotation for the file log --
    log_max_bytes: int = Field(default=10 * 1024 * 1024, ge=0)  # 10 MB per file
    log_backup_count: int = Field(default=3, ge=0)

    @field_validator("debug", mode="before")
    @classmethod
    def _lenient_debug(cls, v: Any) -> Any:
        # DEBUG often holds a namespace filter such as "*" or "app:*".
        if isinstance(v, str):
            return v.strip().lower() not in _FALSE_STRINGS
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigFileSource(settings_cls, Path.cwd() / CONFIG_FILE_NAME),
        )


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bazel-mcp", description=SERVER_NAME)
    parser.add_argument("--bazel_path", help="Bazel binary to run (default: bazel)")
    parser.add_argument("--workspace_path", help="Initial workspace directory")
    parser.add_argument("--workspace_config", help="Alternate bazelrc file")
    parser.add_argument("--log_path", help="Append logs to this file")
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Echo every log line to stderr",
    )
    return parser


def parse_cli_overrides(argv: Sequence[str] | None = None) -> dict[str, Any]:
    """Return only the settings explicitly given on the command line.

    Unknown arguments are ignored.
    """
    args, _unknown = build_arg_parser().parse_known_args(argv)
    return {k: v for k, v in vars(args).items() if v is not None}


def load_settings(argv: Sequence[str] | None = None) -> Settings:
    """Resolve settings from all sources for the given command line."""
    return Settings(**parse_cli_overrides(argv))
