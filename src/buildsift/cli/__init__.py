"""CLI module."""

from buildsift.cli.main import main

__all__ = ["main"]
