"""
Command-line entry point.

    coding-agent [chat]          interactive session (default)
    coding-agent ask QUESTION    single question, exit code reflects success
    coding-agent config          show effective configuration
    coding-agent version         show version information
    coding-agent setup           write an API key and preferences to .env
"""

import argparse
import getpass
import logging
import platform
import sys
from collections.abc import Callable
from pathlib import Path

from dotenv import find_dotenv, load_dotenv, set_key

from coding_agent import __version__
from coding_agent.cli.console import ConsoleUI
from coding_agent.config import AgentConfig
from coding_agent.llm import LLMClient
from coding_agent.loop import AgentLoop, ChatStreamer

logger = logging.getLogger(__name__)

PREFERENCES = (
    ("AUTO_EXECUTE_SAFE_COMMANDS", "Auto-execute safe commands (ls, git status, etc.)?"),
    ("SAVE_CONVERSATION_HISTORY", "Save conversation history?"),
    ("CODING_AGENT_VERBOSE", "Verbose output?"),
)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--verbose", action="store_true", default=argparse.SUPPRESS,
                        help="Enable verbose output")
    common.add_argument("-w", "--workspace", default=argparse.SUPPRESS,
                        help="Set workspace directory")
    common.add_argument("--env-file", default=argparse.SUPPRESS,
                        help="Path to a .env file (default: nearest .env from cwd)")

    parser = argparse.ArgumentParser(
        prog="coding-agent",
        description="Coding Agent - your AI pair programmer",
        parents=[common],
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.add_parser("chat", parents=[common],
                          help="Start an interactive chat session (default)")
    ask_parser = subparsers.add_parser("ask", parents=[common],
                                       help="Ask a single question and exit")
    ask_parser.add_argument("question", nargs="+", help="The question to ask")
    subparsers.add_parser("config", parents=[common], help="Show current configuration")
    subparsers.add_parser("version", parents=[common], help="Show version information")
    setup_parser = subparsers.add_parser("setup", parents=[common],
                                         help="Interactive setup wizard")
    setup_parser.add_argument("--path", default=".env",
                              help="Where to write settings (default: ./.env)")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def load_config(args: argparse.Namespace) -> AgentConfig:
    """Read .env, then the environment, then apply command-line overrides."""
    env_file = getattr(args, "env_file", None)
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv(find_dotenv(usecwd=True))

    config = AgentConfig.from_env()
    workspace = getattr(args, "workspace", None)
    if workspace:
        config.workspace_path = Path(workspace).expanduser().resolve()
    if getattr(args, "verbose", False):
        config.verbose = True
    return config


def report_invalid(config: AgentConfig, ui: ConsoleUI) -> bool:
    """Print configuration problems. Returns True if there were any."""
    errors = config.validation_errors()
    if not errors:
        return False
    ui.render("Configuration errors:", "error")
    for error in errors:
        ui.render(f"  - {error}", "error")
    return True


def run_with_client(
    config: AgentConfig,
    ui: ConsoleUI,
    llm_client: ChatStreamer | None,
    action: Callable[[AgentLoop], int],
) -> int:
    """Build the agent loop, run `action` on it and close any client we opened."""
    if report_invalid(config, ui):
        return 1
    if llm_client is not None:
        return action(AgentLoop(config, llm_client, ui=ui))
    with LLMClient(config.llm) as client:
        return action(AgentLoop(config, client, ui=ui))


def cmd_chat(config: AgentConfig, ui: ConsoleUI, llm_client: ChatStreamer | None) -> int:
    def chat(loop: AgentLoop) -> int:
        loop.run()
        return 0

    return run_with_client(config, ui, llm_client, chat)


def cmd_ask(
    config: AgentConfig, ui: ConsoleUI, llm_client: ChatStreamer | None, question: str
) -> int:
    def ask(loop: AgentLoop) -> int:
        return 0 if loop.ask(question).success else 1

    return run_with_client(config, ui, llm_client, ask)


def cmd_version(ui: ConsoleUI) -> int:
    ui.render(f"Coding Agent v{__version__}")
    ui.render(f"Python {platform.python_version()}")
    ui.render("Powered by httpx and GitPython")
    return 0


def cmd_config(config: AgentConfig, ui: ConsoleUI) -> int:
    ui.render("Current Configuration", "header")
    ui.table(config.display_rows(), header=("Setting", "Value"))
    errors = config.validation_errors()
    if errors:
        ui.render("Configuration issues:", "error")
        for error in errors:
            ui.render(f"  - {error}", "error")
    return 0


def cmd_setup(config: AgentConfig, ui: ConsoleUI, env_path: str) -> int:
    ui.render("Coding Agent Setup", "header")
    path = Path(env_path)
    path.touch(exist_ok=True)

    if config.llm.api_key:
        ui.render("API key is already configured", "success")
    else:
        api_key = getpass.getpass("Enter your OpenAI API key: ").strip()
        if api_key:
            set_key(str(path), "OPENAI_API_KEY", api_key)
            ui.render(f"API key saved to {path}", "success")
        else:
            ui.render("No API key entered", "warning")

    if ui.confirm("Would you like to configure preferences?", default=False):
        for key, question in PREFERENCES:
            enabled = ui.confirm(question, default=False)
            set_key(str(path), key, "true" if enabled else "false")
        ui.render("Preferences saved!", "success")

    ui.render("Setup complete! Run 'coding-agent chat' to start.", "success")
    return 0


def main(
    argv: list[str] | None = None,
    ui: ConsoleUI | None = None,
    llm_client: ChatStreamer | None = None,
) -> int:
    """CLI entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    ui = ui or ConsoleUI()

    config = load_config(args)
    configure_logging(config.verbose)
    logger.debug(f"Workspace: {config.workspace_path}")

    command = args.command or "chat"
    try:
        if command == "chat":
            return cmd_chat(config, ui, llm_client)
        if command == "ask":
            return cmd_ask(config, ui, llm_client, " ".join(args.question))
        if command == "config":
            return cmd_config(config, ui)
        if command == "version":
            return cmd_version(ui)
        if command == "setup":
            return cmd_setup(config, ui, args.path)
    except (EOFError, KeyboardInterrupt):
        ui.render("Interrupted", "warning")
        return 130

    parser.print_help()
    return 2
