"""List the immediate entries of a workspace directory."""

import os
from typing import Any

from coding_agent.tools.base import Tool, ToolParameter
from coding_agent.types import ErrorKind, ToolFailure, ToolResult, ToolSuccess


class ListFiles(Tool):
    """Directories are reported with a trailing '/', files without."""

    name = "list_files"
    description = (
        "Explore directory structure to find files and subdirectories. "
        "Essential for understanding project layout before making changes. "
        "Directories end with '/', files don't. "
        "Use this to discover what files exist, then read_file to examine them. "
        "Defaults to the workspace root if no path is provided."
    )
    parameters = (
        ToolParameter(
            "path", "string",
            "Relative path to list (defaults to the workspace root)",
            required=False,
        ),
    )

    def execute(self, **kwargs: Any) -> ToolResult:
        path = kwargs.get("path") or ""
        full_path = self.context.resolve(path or ".")
        shown = path or "."

        if not full_path.exists():
            self.context.emit(f"Path not found: {shown}", "error")
            return ToolFailure(
                error=f"Path not found: {shown}",
                kind=ErrorKind.NOT_FOUND,
                hint="Use list_files without a path to see the workspace root",
            )

        if not full_path.is_dir():
            self.context.emit(f"{shown} is not a directory", "error")
            return ToolFailure(
                error=f"{shown} is not a directory",
                kind=ErrorKind.NOT_A_DIRECTORY,
                hint=f"Use read_file(path: '{shown}') to read it",
            )

        entries = sorted(
            f"{entry.name}/" if entry.is_dir() else entry.name
            for entry in os.scandir(full_path)
        )

        self.context.emit(f"{len(entries)} items in {path or 'current workspace'}")
        return ToolSuccess({
            "path": shown,
            "entries": entries,
            "count": len(entries),
        })
