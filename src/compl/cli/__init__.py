"""
CLI module for compl - command-line interface and terminal UI.
"""

from compl.cli import ui
from compl.cli.commands import main

__all__ = ["main", "ui"]
