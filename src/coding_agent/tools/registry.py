"""
Tool registry.

The registry is the controlled interface through which the agent can
affect the world. Only tools registered here can be called, and every
call goes through `dispatch()`, which never raises: whatever goes wrong
comes back to the model as a ToolFailure.
"""

import logging
from typing import Any

from coding_agent.config import AgentConfig
from coding_agent.safety import ShellCommandGate
from coding_agent.tools.base import Tool, ToolContext
from coding_agent.types import ErrorKind, ToolCall, ToolFailure, ToolResult
from coding_agent.ui import UserInterface

logger = logging.getLogger(__name__)


class ToolRegistry:
    """Registry of available tools, keyed by name."""

    def __init__(self, tools: list[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    @classmethod
    def from_config(
        cls,
        config: AgentConfig,
        ui: UserInterface | None = None,
        gate: ShellCommandGate | None = None,
        tool_classes: list[type[Tool]] | None = None,
    ) -> "ToolRegistry":
        """Instantiate every tool in `tool_classes` (default: DEFAULT_TOOLS)."""
        from coding_agent.tools import DEFAULT_TOOLS

        context = ToolContext.from_config(config, ui=ui, gate=gate)
        classes = tool_classes if tool_classes is not None else DEFAULT_TOOLS
        return cls([tool_class(context) for tool_class in classes])

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        if tool.name in self._tools:
            logger.warning(f"Overwriting existing tool: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get(self, name: str) -> Tool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def dispatch(self, tool_call: ToolCall) -> ToolResult:
        """
        Execute a tool call.

        This is the hard catch for tool execution: unknown tools,
        unparseable arguments and unexpected exceptions all become
        failures instead of propagating into the agent loop.
        """
        tool = self._tools.get(tool_call.name)
        if tool is None:
            return ToolFailure(
                error=f"Unknown tool: {tool_call.name}",
                kind=ErrorKind.UNKNOWN_TOOL,
                hint=f"Available tools: {', '.join(self.tool_names)}",
            )

        if tool_call.arguments_error is not None:
            return ToolFailure(
                error=f"Could not parse arguments for {tool_call.name}: "
                      f"{tool_call.arguments_error}",
                kind=ErrorKind.INVALID_ARGUMENTS,
                hint="Send the arguments as a single JSON object",
            )

        if not isinstance(tool_call.arguments, dict):
            return ToolFailure(
                error=f"Arguments for {tool_call.name} must be an object",
                kind=ErrorKind.INVALID_ARGUMENTS,
                hint=f"{tool_call.name} requires: {', '.join(tool.required_parameters())}",
            )

        logger.info(f"Executing tool: {tool_call.name}")
        try:
            result = tool.run(tool_call.arguments)
        except Exception as e:
            logger.exception(f"Tool {tool_call.name} failed")
            return ToolFailure(error=str(e) or type(e).__name__, kind=ErrorKind.INTERNAL)

        if not result.success:
            logger.info(f"Tool {tool_call.name} returned failure: {result.to_dict()}")
        return result

    def schemas(self) -> list[dict[str, Any]]:
        """Get OpenAI-format schemas for all registered tools."""
        return [tool.to_openai_schema() for tool in self._tools.values()]

    def describe(self) -> list[dict[str, Any]]:
        """Name, description and parameter records for all registered tools."""
        return [tool.describe() for tool in self._tools.values()]

    @property
    def tool_names(self) -> list[str]:
        """List of registered tool names."""
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
