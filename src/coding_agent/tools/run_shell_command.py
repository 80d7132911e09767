"""
Run a shell command in the workspace.

Every command goes through the ShellCommandGate first. A declined
command never reaches the shell. An approved one runs with the
workspace root as its working directory; stdout and stderr are
captured together.
"""

import logging
import subprocess
from typing import Any

from coding_agent.tools.base import Tool, ToolParameter
from coding_agent.types import ErrorKind, ToolFailure, ToolResult, ToolSuccess

logger = logging.getLogger(__name__)


class RunShellCommand(Tool):
    name = "run_shell_command"
    description = (
        "Execute shell commands to run tests, build projects, check git status, or "
        "perform system operations. Safe commands (ls, git status, test runners) may "
        "run automatically; anything else asks the user for confirmation and may be "
        "declined. Use this to verify changes work after edit_file. "
        "Returns stdout, exit code and success."
    )
    parameters = (
        ToolParameter("command", "string", "The shell command to execute"),
    )

    def execute(self, **kwargs: Any) -> ToolResult:
        command = str(kwargs["command"])

        decision = self.context.gate.review(command)
        if not decision.approved:
            self.context.emit("Command execution cancelled by user", "warning")
            return ToolFailure(
                error="User declined to execute command",
                kind=ErrorKind.USER_DECLINED,
                hint="Ask the user how to proceed or try a different approach",
            )

        self.context.emit(f"Executing: {command}", "info")
        timeout = self.context.config.tools.shell_timeout
        try:
            proc = subprocess.run(
                command,
                shell=True,
                cwd=self.workspace,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            self.context.emit(f"Command timed out after {timeout}s", "error")
            return ToolFailure(
                error=f"Command timed out after {timeout} seconds",
                kind=ErrorKind.EXECUTION_ERROR,
                details={"command": command},
            )
        except OSError as e:
            logger.error(f"Failed to execute command {command!r}: {e}")
            self.context.emit(f"Failed to execute command: {e}", "error")
            return ToolFailure(
                error=str(e),
                kind=ErrorKind.EXECUTION_ERROR,
                details={"command": command},
            )

        success = proc.returncode == 0
        if success:
            self.context.emit("Command completed successfully", "success")
        else:
            self.context.emit(f"Command failed with exit code {proc.returncode}", "error")

        return ToolSuccess({
            "success": success,
            "exit_code": proc.returncode,
            "stdout": proc.stdout.decode("utf-8", errors="replace"),
            "stderr": "",
            "command": command,
        })
