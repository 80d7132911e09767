"""Shared fixtures: a temporary workspace, its config, and a recording UI."""

from pathlib import Path

import pytest

from coding_agent.config import AgentConfig, HistoryConfig, LLMConfig
from coding_agent.tools import ToolRegistry

ENV_NAMES = (
    "LLM_BASE_URL", "LLM_API_KEY", "OPENAI_API_KEY", "LLM_MODEL", "DEFAULT_MODEL",
    "LLM_TEMPERATURE", "LLM_MAX_TOKENS", "MAX_CONVERSATION_HISTORY",
    "SAVE_CONVERSATION_HISTORY", "HISTORY_FILE_PATH", "AUTO_EXECUTE_SAFE_COMMANDS",
    "SEARCH_MAX_RESULTS", "SEARCH_CONTEXT_LINES", "BINARY_SNIFF_BYTES", "SHELL_TIMEOUT",
    "AGENT_MAX_STEPS", "WORKSPACE_PATH", "CODING_AGENT_VERBOSE", "SHOW_TOKEN_USAGE",
)


class RecordingUI:
    """UI stub that records everything and answers confirmations from a script."""

    def __init__(self, answers: list[bool] | None = None, inputs: list[str] | None = None):
        self.answers = list(answers or [])
        self.inputs = list(inputs or [])
        self.rendered: list[tuple[str, str]] = []
        self.streamed: list[str] = []
        self.confirm_prompts: list[str] = []
        self.stream_ends = 0
        self.cleared = 0

    def render(self, message: str, kind: str = "info") -> None:
        self.rendered.append((kind, message))

    def stream_text(self, delta: str) -> None:
        self.streamed.append(delta)

    def end_stream(self) -> None:
        self.stream_ends += 1

    def confirm(self, prompt: str, default: bool = False) -> bool:
        self.confirm_prompts.append(prompt)
        if self.answers:
            return self.answers.pop(0)
        return default

    def prompt(self, label: str) -> str:
        if not self.inputs:
            raise EOFError
        return self.inputs.pop(0)

    def clear(self) -> None:
        self.cleared += 1

    def messages(self, kind: str | None = None) -> list[str]:
        return [m for k, m in self.rendered if kind is None or k == kind]


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def config(workspace: Path, tmp_path: Path) -> AgentConfig:
    return AgentConfig(
        workspace_path=workspace,
        llm=LLMConfig(api_key="test-key"),
        history=HistoryConfig(history_file=tmp_path / "history.json"),
    )


@pytest.fixture
def ui() -> RecordingUI:
    return RecordingUI()


@pytest.fixture
def registry(config: AgentConfig, ui: RecordingUI) -> ToolRegistry:
    return ToolRegistry.from_config(config, ui=ui)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove every setting the agent reads from the environment."""
    # setenv first so values loaded from .env files are undone on teardown
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
