"""
Tests for git_operations.

Tests that run git are skipped when the git executable is unavailable.
"""

import shutil
from pathlib import Path

import pytest

from coding_agent.config import AgentConfig
from coding_agent.tools import ToolRegistry
from coding_agent.tools.git_operations import build_git_args, needs_confirmation, path_arguments
from coding_agent.types import ErrorKind, ToolCall

from conftest import RecordingUI

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git_op(registry: ToolRegistry, operation: str, args: str | None = None):
    arguments = {"operation": operation}
    if args is not None:
        arguments["args"] = args
    return registry.dispatch(ToolCall(id="call_1", name="git_operations", arguments=arguments))


@pytest.fixture
def repo(workspace: Path) -> Path:
    import git

    repository = git.Repo.init(workspace)
    with repository.config_writer() as cw:
        cw.set_value("user", "name", "Test User")
        cw.set_value("user", "email", "test@example.com")
    return workspace


class TestCommandTemplates:
    """Test the operation-to-command mapping."""

    def test_status_uses_short_branch_form(self) -> None:
        assert build_git_args("status", "--ignored") == ["git", "status", "--short", "--branch"]

    def test_log_defaults_to_last_ten(self) -> None:
        assert build_git_args("log") == ["git", "log", "--oneline", "-10"]
        assert build_git_args("log", "-3") == ["git", "log", "-3"]

    def test_args_are_split_like_a_shell(self) -> None:
        assert build_git_args("commit", '-m "Add feature"') == [
            "git", "commit", "-m", "Add feature",
        ]

    def test_which_operations_need_confirmation(self) -> None:
        assert needs_confirmation("commit", "-m x")
        assert needs_confirmation("add", ".")
        assert needs_confirmation("branch", "feature")
        assert not needs_confirmation("branch")
        assert not needs_confirmation("status")
        assert not needs_confirmation("diff", "HEAD")
        assert not needs_confirmation("log")


class TestValidation:
    """Failures that never reach git."""

    def test_operation_not_allowed(self, registry: ToolRegistry) -> None:
        result = git_op(registry, "push", "origin main")

        assert result.kind == ErrorKind.NOT_ALLOWED
        assert result.error == (
            "Operation 'push' not allowed. Allowed: status, diff, log, add, commit, branch"
        )
        assert result.details["allowed"] == ["status", "diff", "log", "add", "commit", "branch"]

    def test_commit_without_args(self, registry: ToolRegistry) -> None:
        result = git_op(registry, "commit")

        assert result.kind == ErrorKind.INVALID_ARGUMENTS
        assert "-m" in result.hint

    def test_bad_quoting(self, registry: ToolRegistry) -> None:
        result = git_op(registry, "log", "'unterminated")
        assert result.kind == ErrorKind.INVALID_ARGUMENTS


class TestWorkspaceConfinement:
    """git arguments cannot read or write outside the workspace."""

    def test_diff_output_outside_workspace_is_blocked(
        self, config: AgentConfig, workspace: Path, tmp_path: Path
    ) -> None:
        ui = RecordingUI(answers=[True])
        registry = ToolRegistry.from_config(config, ui=ui)
        (workspace / "a.txt").write_text("a\n")

        result = git_op(
            registry, "diff", "--no-index --output=../escaped.txt /etc/hostname a.txt"
        )

        assert result.kind == ErrorKind.NOT_ALLOWED
        assert result.hint
        assert ui.confirm_prompts == []
        assert not (tmp_path / "escaped.txt").exists()

    @pytest.mark.parametrize("args", [
        "--output=../x.patch",
        "--output ../x.patch",
        "--no-index a b",
        "--ext-diff",
        "--git-dir=/tmp/other/.git",
        "--work-tree=/",
        "-C /etc",
        "-O/etc/passwd",
    ])
    def test_escape_options_not_allowed(self, registry: ToolRegistry, args: str) -> None:
        assert git_op(registry, "diff", args).kind == ErrorKind.NOT_ALLOWED

    @pytest.mark.parametrize("operation,args", [
        ("diff", "/etc/hostname"),
        ("log", "-- ../../elsewhere"),
        ("add", "../outside.txt"),
        ("commit", "-m msg --file=/etc/passwd"),
    ])
    def test_paths_outside_workspace_rejected(
        self, config: AgentConfig, operation: str, args: str
    ) -> None:
        ui = RecordingUI(answers=[True])
        registry = ToolRegistry.from_config(config, ui=ui)

        result = git_op(registry, operation, args)

        assert result.kind == ErrorKind.OUTSIDE_WORKSPACE
        assert ui.confirm_prompts == []

    def test_path_arguments_skip_commit_messages(self) -> None:
        tokens = ["-m", "../not a path", "--stat", "--format=%H", "src/app.py"]
        assert path_arguments(tokens) == ["%H", "src/app.py"]


@requires_git
class TestExecution:
    """Run real git in a temporary repository."""

    def test_status(self, registry: ToolRegistry, repo: Path) -> None:
        (repo / "new.txt").write_text("hello\n")

        payload = git_op(registry, "status").to_dict()

        assert payload["success"] is True
        assert payload["exit_code"] == 0
        assert payload["command"] == "git status --short --branch"
        assert "?? new.txt" in payload["output"]

    def test_status_outside_a_repository_is_data(self, registry: ToolRegistry) -> None:
        """A git failure is reported as success=false, not raised."""
        result = git_op(registry, "status")

        assert result.success
        payload = result.to_dict()
        assert payload["success"] is False
        assert payload["exit_code"] != 0
        assert payload["output"]

    def test_add_declined(self, config: AgentConfig, repo: Path) -> None:
        ui = RecordingUI(answers=[False])
        registry = ToolRegistry.from_config(config, ui=ui)
        (repo / "a.txt").write_text("a\n")

        result = git_op(registry, "add", "a.txt")

        assert result.kind == ErrorKind.USER_DECLINED
        assert ui.confirm_prompts == ["Allow this?"]
        assert "?? a.txt" in git_op(registry, "status").to_dict()["output"]

    def test_add_commit_log(self, config: AgentConfig, repo: Path) -> None:
        registry = ToolRegistry.from_config(config, ui=RecordingUI(answers=[True, True]))
        (repo / "a.txt").write_text("a\n")

        assert git_op(registry, "add", "a.txt").to_dict()["success"] is True
        commit = git_op(registry, "commit", '-m "First commit"').to_dict()
        assert commit["success"] is True

        log = git_op(registry, "log").to_dict()
        assert log["command"] == "git log --oneline -10"
        assert "First commit" in log["output"]

        # revisions and in-workspace paths pass the workspace check
        scoped = git_op(registry, "log", "--oneline HEAD -- a.txt").to_dict()
        assert scoped["success"] is True
        assert "First commit" in scoped["output"]

    def test_bare_branch_needs_no_confirmation(self, config: AgentConfig, repo: Path) -> None:
        ui = RecordingUI()
        registry = ToolRegistry.from_config(config, ui=ui)

        result = git_op(registry, "branch")

        assert result.success
        assert ui.confirm_prompts == []
