"""
Git operations restricted to a fixed allow-list.

Read-only operations (status, diff, log, bare branch) run directly.
Operations that change the repository (add, commit, branch with
arguments) need the user's approval through the command gate.
"""

import logging
import shlex
from typing import Any

from coding_agent.safety import find_git_escape_option
from coding_agent.tools.base import Tool, ToolParameter
from coding_agent.types import ErrorKind, ToolFailure, ToolResult, ToolSuccess

logger = logging.getLogger(__name__)

ALLOWED_OPERATIONS = ("status", "diff", "log", "add", "commit", "branch")
MESSAGE_OPTIONS = ("-m", "--message")


def build_git_args(operation: str, args: str = "") -> list[str]:
    """Map an allowed operation and its argument string to a git argv."""
    extra = shlex.split(args) if args else []
    if operation == "status":
        return ["git", "status", "--short", "--branch"]
    if operation == "log" and not extra:
        return ["git", "log", "--oneline", "-10"]
    return ["git", operation, *extra]


def needs_confirmation(operation: str, args: str = "") -> bool:
    if operation in ("add", "commit"):
        return True
    return operation == "branch" and bool(args.strip())


def path_arguments(tokens: list[str]) -> list[str]:
    """
    Arguments git may treat as paths: positional tokens and option values.

    Commit messages are not paths and are left out.
    """
    paths = []
    skip_next = False
    for token in tokens:
        if skip_next:
            skip_next = False
            continue
        if token in MESSAGE_OPTIONS:
            skip_next = True
            continue
        if token.startswith("-"):
            if "=" in token and not token.startswith("--message="):
                paths.append(token.split("=", 1)[1])
            continue
        paths.append(token)
    return paths


class GitOperations(Tool):
    name = "git_operations"
    description = (
        "Perform git operations to track changes, view history, and manage commits. "
        "Use 'status' to see what files changed, 'diff' to examine specific changes, "
        "'log' to view commit history, 'add' to stage files, 'commit' to save changes "
        "(e.g. args: -m \"message\"), 'branch' to list or create branches. "
        "add, commit and branch creation ask the user for confirmation. "
        "Returns git output, exit code and success."
    )
    parameters = (
        ToolParameter(
            "operation", "string",
            f"Git operation to perform: {', '.join(ALLOWED_OPERATIONS)}",
        ),
        ToolParameter(
            "args", "string",
            "Additional arguments for the git command",
            required=False,
        ),
    )

    def execute(self, **kwargs: Any) -> ToolResult:
        operation = str(kwargs["operation"]).strip()
        args = str(kwargs.get("args") or "").strip()

        if operation not in ALLOWED_OPERATIONS:
            return ToolFailure(
                error=f"Operation '{operation}' not allowed. "
                      f"Allowed: {', '.join(ALLOWED_OPERATIONS)}",
                kind=ErrorKind.NOT_ALLOWED,
                hint=f"Use one of: {', '.join(ALLOWED_OPERATIONS)}",
                details={"allowed": list(ALLOWED_OPERATIONS)},
            )

        if operation in ("add", "commit") and not args:
            hint = (
                "Pass the paths to stage, e.g. args: \".\""
                if operation == "add"
                else "Pass a message, e.g. args: -m \"Describe the change\""
            )
            return ToolFailure(
                error=f"git {operation} needs arguments",
                kind=ErrorKind.INVALID_ARGUMENTS,
                hint=hint,
            )

        try:
            argv = build_git_args(operation, args)
        except ValueError as e:
            return ToolFailure(
                error=f"Could not parse args: {e}",
                kind=ErrorKind.INVALID_ARGUMENTS,
                hint="Check the quoting in args",
            )
        command = shlex.join(argv)

        escape = find_git_escape_option(argv[2:])
        if escape:
            self.context.emit(f"Git option {escape} blocked", "error")
            return ToolFailure(
                error=f"Option '{escape}' not allowed: it reaches outside the workspace",
                kind=ErrorKind.NOT_ALLOWED,
                hint="Drop the option; git output is returned to you directly",
                details={"command": command},
            )

        # Raises OutsideWorkspaceError for any path that leaves the workspace.
        for path in path_arguments(argv[2:]):
            self.context.resolve(path)

        if needs_confirmation(operation, args):
            decision = self.context.gate.confirm_action(command)
            if not decision.approved:
                self.context.emit(f"git {operation} cancelled by user", "warning")
                return ToolFailure(
                    error="User declined to run git command",
                    kind=ErrorKind.USER_DECLINED,
                    hint="Ask the user how to proceed",
                    details={"command": command},
                )

        import git

        logger.info(f"Running {command} in {self.workspace}")
        try:
            status, stdout, stderr = git.Git(str(self.workspace)).execute(
                argv,
                with_extended_output=True,
                with_exceptions=False,
            )
        except git.GitCommandNotFound as e:
            self.context.emit(f"Git operation failed: {e}", "error")
            return ToolFailure(
                error=f"git executable not found: {e}",
                kind=ErrorKind.EXECUTION_ERROR,
                details={"command": command},
            )

        output = "\n".join(part for part in (stdout, stderr) if part)
        success = status == 0
        if success:
            self.context.emit(f"Git {operation} completed", "success")
        else:
            self.context.emit(f"Git {operation} had issues", "warning")

        return ToolSuccess({
            "success": success,
            "exit_code": status,
            "output": output,
            "command": command,
        })
