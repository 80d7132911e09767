"""
Search file contents with a case-insensitive regular expression.

Files are enumerated in sorted path order and lines in file order, and
the result cap is applied only after every match has been collected, so
the returned matches are deterministic for a given workspace.
"""

import logging
import re
from pathlib import Path
from typing import Any

from coding_agent.tools.base import Tool, ToolParameter
from coding_agent.types import ErrorKind, ToolFailure, ToolResult, ToolSuccess

logger = logging.getLogger(__name__)


def is_binary(path: Path, sniff_bytes: int = 1000) -> bool:
    """A null byte near the start marks a file as binary. Unreadable counts too."""
    try:
        with open(path, "rb") as f:
            return b"\x00" in f.read(sniff_bytes)
    except OSError:
        return True


def _split_lines(content: str) -> list[str]:
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


class SearchFiles(Tool):
    name = "search_files"
    description = (
        "Search for patterns across files to find definitions, usages, or specific code. "
        "Like grep but returns context with file paths and line numbers. "
        "Use it to find where functions are defined or track down TODO comments, "
        "then read_file to look at a hit in full. "
        "The pattern is a case-insensitive regular expression; file_pattern filters "
        "file names (e.g. '*.py')."
    )
    parameters = (
        ToolParameter("pattern", "string", "The regex pattern to search for"),
        ToolParameter(
            "path", "string",
            "Path to search in (defaults to entire workspace)",
            required=False,
        ),
        ToolParameter(
            "file_pattern", "string",
            "File pattern to match (e.g., '*.py', '*.js')",
            required=False,
        ),
    )

    def execute(self, **kwargs: Any) -> ToolResult:
        pattern = str(kwargs["pattern"])
        path = kwargs.get("path") or "."
        file_pattern = kwargs.get("file_pattern") or "*"
        search_path = self.context.resolve(path)

        if not search_path.exists():
            self.context.emit(f"Search path not found: {path}", "error")
            return ToolFailure(
                error=f"Search path not found: {path}",
                kind=ErrorKind.NOT_FOUND,
                hint="Use list_files to see available paths",
            )

        try:
            regex = re.compile(pattern, re.IGNORECASE)
        except re.error as e:
            self.context.emit(f"Invalid pattern '{pattern}': {e}", "error")
            return ToolFailure(
                error=f"Invalid regular expression: {e}",
                kind=ErrorKind.INVALID_PATTERN,
                hint="Escape special characters such as ( ) [ ] . * + ? to search literally",
            )

        matches = self._find_matches(search_path, regex, file_pattern)
        limit = self.context.config.tools.search_max_results
        shown = matches[:limit]

        self.context.emit(f"Found {len(matches)} matches for '{pattern}'", "success")
        return ToolSuccess({
            "pattern": pattern,
            "matches": shown,
            "count": len(shown),
            "total_matches": len(matches),
            "truncated": len(matches) > len(shown),
        })

    def _candidate_files(self, search_path: Path, file_pattern: str) -> list[Path]:
        if search_path.is_file():
            return [search_path]

        sandbox = self.context.sandbox
        files = []
        for candidate in search_path.glob(f"**/{file_pattern}"):
            relative_parts = candidate.relative_to(search_path).parts
            if any(part.startswith(".") for part in relative_parts):
                continue
            if not candidate.is_file():
                continue
            # Symlinks may point out of the workspace.
            if not sandbox.contains(candidate.resolve()):
                continue
            files.append(candidate)
        return sorted(files)

    def _find_matches(
        self, search_path: Path, regex: re.Pattern[str], file_pattern: str
    ) -> list[dict[str, Any]]:
        tools_config = self.context.config.tools
        context_lines = tools_config.search_context_lines
        matches: list[dict[str, Any]] = []

        for file in self._candidate_files(search_path, file_pattern):
            if is_binary(file, tools_config.binary_sniff_bytes):
                continue
            try:
                lines = _split_lines(file.read_bytes().decode("utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                logger.debug(f"Skipped {file}: {e}")
                if self.context.config.verbose:
                    self.context.emit(f"Skipped {file}: {e}", "warning")
                continue

            relative = self.context.sandbox.relative(file)
            for index, line in enumerate(lines):
                if not regex.search(line):
                    continue
                start = max(0, index - context_lines)
                end = min(len(lines), index + context_lines + 1)
                matches.append({
                    "file": relative,
                    "line_number": index + 1,
                    "line": line.strip(),
                    "context": [ctx.strip() for ctx in lines[start:end]],
                })

        return matches
