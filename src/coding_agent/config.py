"""
Configuration for the coding agent.

Configuration is built once at startup, either explicitly or from
environment variables, and handed to the agent loop, the tool registry
and every tool. Nothing reads configuration from a global object.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_optional_float(name: str) -> float | None:
    value = os.getenv(name, "").strip()
    return float(value) if value else None


@dataclass
class LLMConfig:
    """Configuration for the model client."""
    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o"
    temperature: float = 0.7
    max_tokens: int = 4096

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Load configuration from environment variables."""
        return cls(
            base_url=os.getenv("LLM_BASE_URL", "https://api.openai.com/v1"),
            api_key=os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY", ""),
            model=os.getenv("LLM_MODEL") or os.getenv("DEFAULT_MODEL", "gpt-4o"),
            temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
            max_tokens=int(os.getenv("LLM_MAX_TOKENS", "4096")),
        )


@dataclass
class HistoryConfig:
    """
    Conversation history settings.

    max_messages bounds the history: once exceeded, the first two
    messages are kept and everything but the most recent ones is dropped.
    """
    max_messages: int = 50
    save: bool = False
    history_file: Path = field(
        default_factory=lambda: Path("~/.coding_agent_history.json").expanduser()
    )
    chars_per_token: float = 4.0

    @classmethod
    def from_env(cls) -> "HistoryConfig":
        """Load configuration from environment variables."""
        return cls(
            max_messages=int(os.getenv("MAX_CONVERSATION_HISTORY", "50")),
            save=_env_bool("SAVE_CONVERSATION_HISTORY", False),
            history_file=Path(
                os.getenv("HISTORY_FILE_PATH", "~/.coding_agent_history.json")
            ).expanduser(),
        )


@dataclass
class ToolConfig:
    """Knobs for tool behaviour."""
    auto_execute_safe_commands: bool = False
    search_max_results: int = 100
    search_context_lines: int = 2
    binary_sniff_bytes: int = 1000
    shell_timeout: float | None = None

    @classmethod
    def from_env(cls) -> "ToolConfig":
        """Load configuration from environment variables."""
        return cls(
            auto_execute_safe_commands=_env_bool("AUTO_EXECUTE_SAFE_COMMANDS", False),
            search_max_results=int(os.getenv("SEARCH_MAX_RESULTS", "100")),
            search_context_lines=int(os.getenv("SEARCH_CONTEXT_LINES", "2")),
            binary_sniff_bytes=int(os.getenv("BINARY_SNIFF_BYTES", "1000")),
            shell_timeout=_env_optional_float("SHELL_TIMEOUT"),
        )


@dataclass
class LoopConfig:
    """
    Configuration for the agent loop.

    max_steps caps model invocations within one turn so a model that keeps
    asking for tools cannot spin forever.
    """
    max_steps: int = 25

    @classmethod
    def from_env(cls) -> "LoopConfig":
        """Load configuration from environment variables."""
        return cls(
            max_steps=int(os.getenv("AGENT_MAX_STEPS", "25")),
        )


@dataclass
class AgentConfig:
    """Combined configuration for the entire agent."""
    workspace_path: Path = field(default_factory=Path.cwd)
    llm: LLMConfig = field(default_factory=LLMConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    tools: ToolConfig = field(default_factory=ToolConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    verbose: bool = False
    show_token_usage: bool = False

    def __post_init__(self) -> None:
        self.workspace_path = Path(self.workspace_path).expanduser()

    @classmethod
    def from_env(cls) -> "AgentConfig":
        """Load all configuration from environment variables."""
        return cls(
            workspace_path=Path(os.getenv("WORKSPACE_PATH") or Path.cwd()),
            llm=LLMConfig.from_env(),
            history=HistoryConfig.from_env(),
            tools=ToolConfig.from_env(),
            loop=LoopConfig.from_env(),
            verbose=_env_bool("CODING_AGENT_VERBOSE", False),
            show_token_usage=_env_bool("SHOW_TOKEN_USAGE", False),
        )

    def validation_errors(self) -> list[str]:
        """Human-friendly list of configuration problems."""
        errors: list[str] = []
        if not self.llm.api_key:
            errors.append("API key is not set (LLM_API_KEY or OPENAI_API_KEY)")
        if not self.workspace_path.exists():
            errors.append(f"Workspace path does not exist: {self.workspace_path}")
        elif not self.workspace_path.is_dir():
            errors.append(f"Workspace path is not a directory: {self.workspace_path}")
        if self.history.max_messages < 2:
            errors.append("max conversation history must be at least 2")
        return errors

    @property
    def is_valid(self) -> bool:
        return not self.validation_errors()

    def display_rows(self) -> list[tuple[str, Any]]:
        """Settings worth showing to a user, in display order."""
        return [
            ("Model", self.llm.model),
            ("API base URL", self.llm.base_url),
            ("API key", "set" if self.llm.api_key else "not set"),
            ("Workspace", str(self.workspace_path)),
            ("Max tokens", self.llm.max_tokens),
            ("Temperature", self.llm.temperature),
            ("Max conversation history", self.history.max_messages),
            ("Auto-execute safe commands", self.tools.auto_execute_safe_commands),
            ("Save history", self.history.save),
            ("History file", str(self.history.history_file)),
            ("Verbose", self.verbose),
        ]
