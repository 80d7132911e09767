"""
AgentLoop - turn-based agent execution.

One turn:
1. Receives user input and records it
2. Streams the trimmed conversation plus tool schemas to the model
3. Surfaces text deltas immediately while collecting tool calls
4. Executes requested tools one after another through the registry
5. Feeds results back and re-invokes the model
6. Stops when the model answers without tool calls, or max steps is hit

The loop is strictly sequential. Any exception from the model client or
from tool dispatch is caught at the turn boundary, reported through the
UI, and the loop goes back to waiting for input.
"""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol

from coding_agent.config import AgentConfig
from coding_agent.context import ConversationState
from coding_agent.llm import ToolCallAssembler
from coding_agent.tools import ToolRegistry
from coding_agent.types import LoopPhase, StreamChunk, TokenUsage, ToolCall, ToolFailure
from coding_agent.ui import NullUI, UserInterface

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit", "q")
HISTORY_PREVIEW_MESSAGES = 5
HISTORY_PREVIEW_CHARS = 200

SYSTEM_PROMPT = """\
You are a helpful AI coding assistant with access to file and command execution tools.
All paths are relative to the workspace root; you cannot touch anything outside it.

CORE PRINCIPLES:
1. Explore before acting: use list_files and read_file to understand the codebase structure
2. Search to understand: use search_files to find how features are implemented
3. Verify changes: read files after editing to confirm changes were applied correctly
4. Test your work: run tests or builds to verify functionality
5. Be transparent: explain what you're doing and why

TOOL USAGE PATTERNS:
- To understand a project: list_files -> read_file (key files) -> search_files (specific patterns)
- To make changes: read_file -> edit_file -> read_file (verify) -> run_shell_command (test)
- To create files: use edit_file with old_str='' (empty string) and new_str as full content
- To track changes: git_operations with 'status' and 'diff'

BEST PRACTICES:
- Always read a file before editing it to understand its current state
- Make small, focused changes rather than large rewrites
- Include context in old_str to ensure uniqueness when editing
- When a tool result has a "hint", follow it before retrying
- Run tests after making changes to catch regressions

Remember: you have the tools to explore, understand, modify, and verify code.
Use them proactively to provide the best help possible.
"""

HELP_ROWS = (
    ("help", "Show this help message"),
    ("clear", "Clear the screen"),
    ("history", "Show conversation history"),
    ("stats", "Show agent statistics"),
    ("exit/quit/q", "Exit the agent"),
)


class ChatStreamer(Protocol):
    """Anything that can stream a chat completion (LLMClient or a test stub)."""

    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> Iterator[StreamChunk]: ...


@dataclass
class TurnResult:
    """Outcome of one user turn."""
    success: bool
    response: str = ""
    steps: int = 0
    tool_calls: list[ToolCall] = field(default_factory=list)
    error: str | None = None


class AgentLoop:
    """
    Interactive agent loop bound to one conversation.

    States: AWAITING_INPUT -> DISPATCHING -> (STREAMING_RESPONSE ->
    AWAITING_INPUT | TOOL_CALL_PENDING -> DISPATCHING).
    """

    def __init__(
        self,
        config: AgentConfig,
        llm_client: ChatStreamer,
        registry: ToolRegistry | None = None,
        conversation: ConversationState | None = None,
        ui: UserInterface | None = None,
        system_prompt: str = SYSTEM_PROMPT,
    ) -> None:
        self.config = config
        self.llm_client = llm_client
        self.ui = ui or NullUI()
        if registry is None:
            registry = ToolRegistry.from_config(config, ui=self.ui)
        self.registry = registry
        if conversation is None:
            conversation = ConversationState(config.history)
        self.conversation = conversation
        self.conversation.ensure_system_prompt(system_prompt)
        self.phase = LoopPhase.AWAITING_INPUT

    @property
    def usage(self) -> TokenUsage:
        return self.conversation.usage

    def ask(self, question: str) -> TurnResult:
        """Single non-interactive turn."""
        return self.run_turn(question)

    def run_turn(self, text: str) -> TurnResult:
        """Process one user input through to the model's final reply."""
        text = text.strip()
        if not text:
            return TurnResult(success=False, error="Empty input")

        executed: list[ToolCall] = []
        steps = 0
        try:
            self.conversation.add_user_message(text)
            for steps in range(1, self.config.loop.max_steps + 1):
                response, calls = self._invoke_model()
                if not calls:
                    self.conversation.add_assistant_message(response)
                    return TurnResult(
                        success=True, response=response, steps=steps, tool_calls=executed
                    )

                self.phase = LoopPhase.TOOL_CALL_PENDING
                self.conversation.add_assistant_message(
                    response, tool_calls=[call.to_api() for call in calls]
                )
                for call in calls:
                    self._execute_tool_call(call)
                    executed.append(call)

            error = (
                f"Stopped after {self.config.loop.max_steps} model calls "
                "without a final answer"
            )
            logger.warning(error)
            self.ui.render(error, "error")
            return TurnResult(success=False, steps=steps, tool_calls=executed, error=error)

        except Exception as e:
            logger.exception("Turn failed")
            self.ui.end_stream()
            self.ui.render(f"Error: {e}", "error")
            return TurnResult(success=False, steps=steps, tool_calls=executed, error=str(e))

        finally:
            self.phase = LoopPhase.AWAITING_INPUT

    def _invoke_model(self) -> tuple[str, list[ToolCall]]:
        """Stream one model response. Returns its text and requested tool calls."""
        self.phase = LoopPhase.DISPATCHING
        messages = self.conversation.context_messages()
        logger.debug(f"Invoking model with {len(messages)} messages")

        parts: list[str] = []
        assembler = ToolCallAssembler()
        streamed = False

        for chunk in self.llm_client.stream(messages, self.registry.schemas()):
            self.phase = LoopPhase.STREAMING_RESPONSE
            if chunk.text:
                self.ui.stream_text(chunk.text)
                parts.append(chunk.text)
                streamed = True
            for delta in chunk.tool_calls:
                assembler.add(delta)
            if chunk.usage:
                self.conversation.usage.add(
                    chunk.usage.get("input", 0), chunk.usage.get("output", 0)
                )

        if streamed:
            self.ui.end_stream()
        return "".join(parts), assembler.build()

    def _execute_tool_call(self, call: ToolCall) -> None:
        self.phase = LoopPhase.DISPATCHING
        self.ui.render(f"Using {call.name}", "dim")
        result = self.registry.dispatch(call)
        if isinstance(result, ToolFailure) and result.hint:
            self.ui.render(f"Hint: {result.hint}", "dim")
        self.conversation.add_tool_result(call.id, call.name, result.to_json())

    # Interactive session

    def run(self) -> None:
        """Interactive read-eval loop until exit, EOF or Ctrl-C."""
        self.display_welcome()
        try:
            while True:
                try:
                    user_input = self.ui.prompt("You > ").strip()
                except EOFError:
                    break
                if user_input.lower() in EXIT_COMMANDS:
                    break
                if not user_input or self.handle_special_command(user_input):
                    continue

                self.run_turn(user_input)
                if self.config.show_token_usage:
                    self.ui.render(self.usage.inline_summary(), "dim")
        except KeyboardInterrupt:
            self.ui.render("", "info")
        self.display_farewell()

    def handle_special_command(self, text: str) -> bool:
        """Run a REPL command. Returns False if `text` is not one."""
        command = text.lower()
        if command == "help":
            self.display_help()
        elif command == "clear":
            self.ui.clear()
            self.display_welcome()
        elif command == "history":
            self.display_history()
        elif command == "stats":
            self.display_stats()
        else:
            return False
        return True

    def display_welcome(self) -> None:
        self.ui.render("Coding Agent", "header")
        self.ui.render(
            "I'm your AI pair programmer, ready to help with your code.\n"
            "Type 'help' for commands, 'exit' to quit.",
            "info",
        )

    def display_help(self) -> None:
        self.ui.render("Available Commands", "header")
        for command, description in HELP_ROWS:
            self.ui.render(f"  {command:<12} {description}", "info")

    def display_history(self) -> None:
        self.ui.render("Conversation History", "header")
        shown = [
            m for m in self.conversation.messages if m.role.value in ("user", "assistant")
        ]
        if not shown:
            self.ui.render("No conversation history yet.", "info")
            return
        for message in shown[-HISTORY_PREVIEW_MESSAGES:]:
            content = message.content
            if len(content) > HISTORY_PREVIEW_CHARS:
                content = content[: HISTORY_PREVIEW_CHARS - 3] + "..."
            self.ui.render(f"{message.role.value.capitalize()}:", "info")
            self.ui.render(f"  {content}", "info")
            self.ui.render(f"  {message.timestamp:%Y-%m-%d %H:%M:%S}", "dim")

    def stats_rows(self) -> list[tuple[str, Any]]:
        stats = self.conversation.stats()
        return [
            ("Total messages", stats["total"]),
            ("User messages", stats["user"]),
            ("Agent messages", stats["assistant"]),
            ("Tool results", stats["tool"]),
            ("Tools available", len(self.registry)),
            ("Workspace", str(self.config.workspace_path)),
            ("Estimated context tokens", self.conversation.estimate_tokens()),
            ("Total tokens", self.usage.total),
            ("Input tokens", self.usage.input),
            ("Output tokens", self.usage.output),
        ]

    def display_stats(self) -> None:
        self.ui.render("Agent Statistics", "header")
        for label, value in self.stats_rows():
            self.ui.render(f"  {label:<26} {value}", "info")

    def display_farewell(self) -> None:
        self.ui.render("Thank you for using Coding Agent. Happy coding!", "success")
        if self.usage.total > 0:
            self.ui.render(self.usage.session_summary(), "dim")
