"""Package entry point — allows ``python -m bazel_mcp``."""

from .server import cli

if __name__ == "__main__":
    cli()
