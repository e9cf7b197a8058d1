"""
CLI module for propserver.

Provides the command-line interface using Click.
"""

from propserver.cli.main import cli, main

__all__ = ["main", "cli"]
