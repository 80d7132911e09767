"""
Tools the model can call.

DEFAULT_TOOLS is the explicit registration list: any tool class added
here is exposed to the model by ToolRegistry.from_config().
"""

from coding_agent.tools.base import Tool, ToolContext, ToolParameter, count_lines
from coding_agent.tools.edit_file import EditFile
from coding_agent.tools.git_operations import GitOperations
from coding_agent.tools.list_files import ListFiles
from coding_agent.tools.read_file import ReadFile
from coding_agent.tools.registry import ToolRegistry
from coding_agent.tools.run_shell_command import RunShellCommand
from coding_agent.tools.search_files import SearchFiles

DEFAULT_TOOLS: list[type[Tool]] = [
    ReadFile,
    ListFiles,
    EditFile,
    SearchFiles,
    RunShellCommand,
    GitOperations,
]

__all__ = [
    "DEFAULT_TOOLS",
    "EditFile",
    "GitOperations",
    "ListFiles",
    "ReadFile",
    "RunShellCommand",
    "SearchFiles",
    "Tool",
    "ToolContext",
    "ToolParameter",
    "ToolRegistry",
    "count_lines",
]
