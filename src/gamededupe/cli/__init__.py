"""Command-line interface."""

from gamededupe.cli.main import cli

__all__ = ["cli"]
