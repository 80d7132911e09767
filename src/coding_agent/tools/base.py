"""
Tool contract.

Tools are the only way the agent affects the world. Each tool is a class
declaring its name, description and parameters, and implementing
`execute()`. Shared capabilities (path resolution, configuration, the UI
sink and the command gate) live in a ToolContext that every tool holds
by composition.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from coding_agent.config import AgentConfig
from coding_agent.safety import ShellCommandGate
from coding_agent.types import ErrorKind, ToolFailure, ToolResult
from coding_agent.ui import NullUI, UserInterface
from coding_agent.workspace import OutsideWorkspaceError, PathSandbox

logger = logging.getLogger(__name__)


def count_lines(text: str) -> int:
    """Number of lines, counting a final line without a trailing newline."""
    if not text:
        return 0
    return text.count("\n") + (0 if text.endswith("\n") else 1)


@dataclass(frozen=True)
class ToolParameter:
    """One named parameter of a tool, as shown to the model."""
    name: str
    type: str
    description: str
    required: bool = True

    def to_schema(self) -> dict[str, Any]:
        return {"type": self.type, "description": self.description}


@dataclass
class ToolContext:
    """
    Everything a tool borrows from the session.

    Tools own no state across calls. The sandbox carries the workspace
    root, the ui is the output sink for short status lines, and the gate
    decides whether side-effecting commands may run.
    """
    sandbox: PathSandbox
    config: AgentConfig
    ui: UserInterface
    gate: ShellCommandGate

    @classmethod
    def from_config(
        cls,
        config: AgentConfig,
        ui: UserInterface | None = None,
        gate: ShellCommandGate | None = None,
    ) -> "ToolContext":
        ui = ui or NullUI()
        return cls(
            sandbox=PathSandbox(config.workspace_path),
            config=config,
            ui=ui,
            gate=gate or ShellCommandGate(
                ui, auto_execute_safe_commands=config.tools.auto_execute_safe_commands
            ),
        )

    def resolve(self, path: str | None = None) -> Path:
        return self.sandbox.resolve(path)

    def emit(self, message: str, kind: str = "dim") -> None:
        self.ui.render(message, kind)


class Tool:
    """
    Base class for every tool.

    Subclasses set the class attributes and implement `execute()`, which
    receives the validated arguments as keyword arguments and returns a
    ToolSuccess or ToolFailure. Call `run()` rather than `execute()`:
    it checks required parameters and turns sandbox violations into
    failures.
    """

    name: str = ""
    description: str = ""
    parameters: tuple[ToolParameter, ...] = ()

    def __init__(self, context: ToolContext) -> None:
        self.context = context

    @property
    def workspace(self) -> Path:
        return self.context.sandbox.root

    def required_parameters(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def to_openai_schema(self) -> dict[str, Any]:
        """Convert to OpenAI tool format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {p.name: p.to_schema() for p in self.parameters},
                    "required": self.required_parameters(),
                },
            },
        }

    def describe(self) -> dict[str, Any]:
        """Plain record of the tool for display and tests."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type,
                    "required": p.required,
                    "description": p.description,
                }
                for p in self.parameters
            ],
        }

    def run(self, arguments: dict[str, Any]) -> ToolResult:
        """Validate `arguments` and execute the tool."""
        known = {p.name for p in self.parameters}
        unknown = sorted(set(arguments) - known)
        if unknown:
            logger.debug(f"Tool {self.name} ignoring unknown arguments: {unknown}")

        missing = [
            name for name in self.required_parameters()
            if arguments.get(name) is None
        ]
        if missing:
            return ToolFailure(
                error=f"Missing required parameter(s): {', '.join(missing)}",
                kind=ErrorKind.INVALID_ARGUMENTS,
                hint=f"{self.name} requires: {', '.join(self.required_parameters())}",
            )

        kwargs = {k: v for k, v in arguments.items() if k in known}
        try:
            return self.execute(**kwargs)
        except OutsideWorkspaceError as e:
            logger.warning(f"Tool {self.name} blocked: {e}")
            return ToolFailure(error=str(e), kind=ErrorKind.OUTSIDE_WORKSPACE)

    def execute(self, **kwargs: Any) -> ToolResult:
        raise NotImplementedError
