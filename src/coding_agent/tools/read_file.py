"""Read a file from the workspace."""

from typing import Any

from coding_agent.tools.base import Tool, ToolParameter, count_lines
from coding_agent.types import ErrorKind, ToolFailure, ToolResult, ToolSuccess


class ReadFile(Tool):
    name = "read_file"
    description = (
        "Read file contents to examine code, configuration, documentation, or data. "
        "Use whenever you need to understand what's in a file before editing it. "
        "Call list_files first if you are not sure the file exists. "
        "Returns full file content with metadata (lines, size)."
    )
    parameters = (
        ToolParameter("path", "string", "Relative path to the file you want to read"),
    )

    def execute(self, **kwargs: Any) -> ToolResult:
        path = str(kwargs["path"])
        full_path = self.context.resolve(path)

        if not full_path.exists():
            self.context.emit(f"File not found: {path}", "error")
            return ToolFailure(
                error=f"File not found: {path}",
                kind=ErrorKind.NOT_FOUND,
                hint="Use list_files to see available files",
            )

        if full_path.is_dir():
            self.context.emit(f"{path} is a directory, not a file", "error")
            return ToolFailure(
                error=f"{path} is a directory",
                kind=ErrorKind.IS_DIRECTORY,
                hint=f"Use list_files(path: '{path}') to see contents",
            )

        data = full_path.read_bytes()
        content = data.decode("utf-8", errors="replace")
        lines = count_lines(content)

        self.context.emit(f"Read {path} ({lines} lines, {len(data)} bytes)")
        return ToolSuccess({
            "path": path,
            "content": content,
            "lines": lines,
            "size": len(data),
        })
