"""
Coding Agent - an interactive AI pair programmer for the terminal.

A language model is given a fixed set of tools (read, list, edit and
search files, run shell commands, run git) confined to one workspace
directory, and drives them through a turn-based agent loop.
"""

__version__ = "0.1.0"

from coding_agent.config import AgentConfig
from coding_agent.context import ConversationState
from coding_agent.llm import LLMClient, LLMError
from coding_agent.loop import AgentLoop, TurnResult
from coding_agent.tools import ToolRegistry
from coding_agent.types import Message, Role, TokenUsage, ToolCall, ToolFailure, ToolSuccess
from coding_agent.workspace import OutsideWorkspaceError, PathSandbox

__all__ = [
    "AgentConfig",
    "AgentLoop",
    "ConversationState",
    "LLMClient",
    "LLMError",
    "Message",
    "OutsideWorkspaceError",
    "PathSandbox",
    "Role",
    "TokenUsage",
    "ToolCall",
    "ToolFailure",
    "ToolRegistry",
    "ToolSuccess",
    "TurnResult",
    "__version__",
]
