"""UI package exports for the CLI router and plain-text renderer."""

from taskboard.ui.cli import CLIError, build_parser, main, run_cli
from taskboard.ui.render import CLIRenderer, create_renderer

__all__ = [
    "CLIError",
    "CLIRenderer",
    "build_parser",
    "create_renderer",
    "main",
    "run_cli",
]
