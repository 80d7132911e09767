"""
Coding Agent CLI - command-line interface and console UI.

Design decision: plain CLI output instead of TUI libraries, to avoid
adding dependencies for what is a line-oriented conversation.
"""

from coding_agent.cli.app import main
from coding_agent.cli.console import ConsoleUI

__all__ = ["ConsoleUI", "main"]
