"""
Shell command gate.

Decides whether a command the model asked for runs straight away or
needs the user's explicit approval. Approval is automatic only when
auto-execution is switched on AND the command starts with a known
read-only or test-runner command. Everything else is put to the user,
and the default answer is no.
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from enum import Enum

from coding_agent.ui import UserInterface

logger = logging.getLogger(__name__)

# Leading token sequences that are safe to run without confirmation.
SAFE_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("ls",),
    ("pwd",),
    ("cat",),
    ("echo",),
    ("git", "status"),
    ("git", "log"),
    ("git", "diff"),
    ("npm", "test"),
    ("bundle", "exec", "rspec"),
    ("pytest",),
)

# Any control operator makes a command unsafe regardless of its prefix.
_CONTROL_OPERATORS = re.compile(r"[;&|<>`\n]|\$\(")

# git options that read or write files outside the repository, or run
# external programs. Short options also match with an attached value.
GIT_ESCAPE_OPTIONS = (
    "--output",
    "--no-index",
    "--ext-diff",
    "--textconv",
    "--git-dir",
    "--work-tree",
    "--exec-path",
    "-C",
    "-O",
)


def find_git_escape_option(tokens: list[str]) -> str | None:
    """Return the first token that is one of GIT_ESCAPE_OPTIONS, if any."""
    for token in tokens:
        for option in GIT_ESCAPE_OPTIONS:
            if option.startswith("--"):
                if token == option or token.startswith(option + "="):
                    return token
            elif token.startswith(option):
                return token
    return None


class Approval(Enum):
    """Outcome of reviewing a command."""
    AUTO_APPROVED = "auto_approved"
    USER_APPROVED = "user_approved"
    DECLINED = "declined"


@dataclass
class GateDecision:
    """Result of putting a command through the gate."""
    approval: Approval
    command: str

    @property
    def approved(self) -> bool:
        return self.approval is not Approval.DECLINED


class ShellCommandGate:
    """Approval policy for shell commands and other side-effecting actions."""

    def __init__(
        self,
        ui: UserInterface,
        auto_execute_safe_commands: bool = False,
        safe_commands: tuple[tuple[str, ...], ...] = SAFE_COMMANDS,
    ) -> None:
        self.ui = ui
        self.auto_execute_safe_commands = auto_execute_safe_commands
        self.safe_commands = safe_commands

    def is_safe(self, command: str) -> bool:
        """True when the command's leading tokens match the safe list."""
        if _CONTROL_OPERATORS.search(command):
            return False
        try:
            tokens = shlex.split(command)
        except ValueError:
            return False
        if not tokens:
            return False
        if tokens[0] == "git" and find_git_escape_option(tokens[1:]):
            return False
        return any(
            tuple(tokens[: len(safe)]) == safe for safe in self.safe_commands
        )

    def review(self, command: str) -> GateDecision:
        """Decide whether `command` may run, asking the user when needed."""
        if self.auto_execute_safe_commands and self.is_safe(command):
            logger.debug(f"Auto-approved safe command: {command}")
            return GateDecision(Approval.AUTO_APPROVED, command)

        self.ui.render("AI wants to execute:", "warning")
        self.ui.render(command, "code")
        if self._ask("Execute this command?"):
            return GateDecision(Approval.USER_APPROVED, command)

        logger.info(f"Command declined: {command}")
        return GateDecision(Approval.DECLINED, command)

    def confirm_action(self, description: str) -> GateDecision:
        """Put a non-shell side effect (e.g. a git commit) to the user."""
        self.ui.render("AI wants to run:", "warning")
        self.ui.render(description, "code")
        if self._ask("Allow this?"):
            return GateDecision(Approval.USER_APPROVED, description)
        logger.info(f"Action declined: {description}")
        return GateDecision(Approval.DECLINED, description)

    def _ask(self, prompt: str) -> bool:
        try:
            return bool(self.ui.confirm(prompt, default=False))
        except EOFError:
            return False
