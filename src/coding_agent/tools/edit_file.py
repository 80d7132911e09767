"""
Create or edit a file by exact string replacement.

An empty old_str means "create": the file must not exist yet and
new_str becomes its whole content. A non-empty old_str must occur
exactly once in the existing file; ambiguity is always an error, never
resolved by picking the first occurrence.
"""

from typing import Any

from coding_agent.tools.base import Tool, ToolParameter, count_lines
from coding_agent.types import ErrorKind, ToolFailure, ToolResult, ToolSuccess

SEARCHED_PREVIEW_CHARS = 100


def _truncate(text: str, limit: int = SEARCHED_PREVIEW_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


class EditFile(Tool):
    name = "edit_file"
    description = (
        "Edit files by replacing exact string matches. "
        "To CREATE a new file: pass empty string as old_str. "
        "To EDIT an existing file: old_str must match exactly (including whitespace) "
        "and be unique; read_file first to copy it exactly. "
        "Returns detailed feedback about the operation."
    )
    parameters = (
        ToolParameter(
            "path", "string",
            "Relative path to the file (will be created if old_str is empty)",
        ),
        ToolParameter(
            "old_str", "string",
            "String to find and replace. Use empty string '' to create a new file "
            "with new_str as content",
        ),
        ToolParameter(
            "new_str", "string",
            "Replacement string (or full content if creating a new file)",
        ),
    )

    def execute(self, **kwargs: Any) -> ToolResult:
        path = str(kwargs["path"])
        old_str = str(kwargs["old_str"])
        new_str = str(kwargs["new_str"])

        if old_str and old_str == new_str:
            self.context.emit("old_str and new_str are identical", "error")
            return ToolFailure(
                error="old_str and new_str are identical",
                kind=ErrorKind.IDENTICAL_STRINGS,
                hint="Nothing to change; pass a different new_str",
            )

        full_path = self.context.resolve(path)

        if not old_str:
            return self._create(path, full_path, new_str)
        return self._edit(path, full_path, old_str, new_str)

    def _create(self, path: str, full_path, new_str: str) -> ToolResult:
        if full_path.exists():
            self.context.emit(f"Cannot create - {path} already exists", "error")
            return ToolFailure(
                error="File already exists",
                kind=ErrorKind.ALREADY_EXISTS,
                hint="Use a non-empty old_str to edit the existing file",
            )

        data = new_str.encode("utf-8")
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(data)
        lines = count_lines(new_str)

        self.context.emit(f"Created {path} ({lines} lines)", "success")
        return ToolSuccess({
            "path": path,
            "action": "created",
            "content_length": len(data),
            "lines": lines,
        })

    def _edit(self, path: str, full_path, old_str: str, new_str: str) -> ToolResult:
        if not full_path.exists():
            self.context.emit(f"File {path} does not exist", "error")
            return ToolFailure(
                error="File does not exist",
                kind=ErrorKind.DOES_NOT_EXIST,
                hint="Create it with an empty old_str",
            )

        if full_path.is_dir():
            self.context.emit(f"{path} is a directory", "error")
            return ToolFailure(
                error=f"{path} is a directory",
                kind=ErrorKind.IS_DIRECTORY,
                hint=f"Use list_files(path: '{path}') to see contents",
            )

        try:
            content = full_path.read_bytes().decode("utf-8")
        except UnicodeDecodeError as e:
            self.context.emit(f"{path} is not UTF-8 text", "error")
            return ToolFailure(
                error=f"{path} is not UTF-8 text: {e}",
                kind=ErrorKind.NOT_TEXT,
                hint="Edit it with run_shell_command instead (e.g. sed or iconv)",
            )

        occurrences = content.count(old_str)
        if occurrences == 0:
            self.context.emit(f"String not found in {path}", "error")
            return ToolFailure(
                error="String not found",
                kind=ErrorKind.STRING_NOT_FOUND,
                hint="old_str must match the file exactly, including whitespace; "
                     "use read_file to copy it",
                details={"searched": _truncate(old_str)},
            )

        if occurrences > 1:
            message = f"old_str appears {occurrences} times - must be unique"
            self.context.emit(message, "error")
            return ToolFailure(
                error=message,
                kind=ErrorKind.NOT_UNIQUE,
                hint="Include more surrounding context to make old_str unique",
                details={"occurrences": occurrences},
            )

        new_content = content.replace(old_str, new_str, 1)
        full_path.write_bytes(new_content.encode("utf-8"))

        delta = count_lines(new_content) - count_lines(content)
        self.context.emit(
            f"Edited {path} ({'+' if delta >= 0 else ''}{delta} lines)", "success"
        )
        return ToolSuccess({
            "path": path,
            "action": "edited",
            "old_length": len(content.encode("utf-8")),
            "new_length": len(new_content.encode("utf-8")),
            "lines_changed": delta,
        })
