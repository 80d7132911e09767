"""
End-to-end tool sequences a model typically issues, run through the registry.
"""

from pathlib import Path

from coding_agent.tools import ToolRegistry
from coding_agent.types import ToolCall

ADD_METHOD = """\
  def add(a, b)
    a + b
  end
"""

CALCULATOR = f"""\
class Calculator
{ADD_METHOD}end
"""

SUBTRACT_METHOD = """\

  def subtract(a, b)
    a - b
  end
"""


def call(registry: ToolRegistry, name: str, **arguments):
    return registry.dispatch(ToolCall(id=f"call_{name}", name=name, arguments=arguments))


class TestCalculatorScenario:
    """Create, read, edit, re-read and search a small Ruby file."""

    def test_create_edit_verify_search(self, registry: ToolRegistry, workspace: Path) -> None:
        created = call(registry, "edit_file", path="calculator.rb", old_str="", new_str=CALCULATOR)
        assert created.success
        assert created.to_dict()["action"] == "created"

        first_read = call(registry, "read_file", path="calculator.rb")
        assert "def add" in first_read.to_dict()["content"]

        edited = call(
            registry, "edit_file",
            path="calculator.rb",
            old_str=ADD_METHOD,
            new_str=ADD_METHOD + SUBTRACT_METHOD,
        )
        assert edited.success
        assert edited.to_dict()["action"] == "edited"

        content = call(registry, "read_file", path="calculator.rb").to_dict()["content"]
        assert "def subtract" in content
        assert "def add" in content
        assert content == (workspace / "calculator.rb").read_text()

        search = call(registry, "search_files", pattern="def ").to_dict()
        assert search["count"] >= 2
        assert {m["file"] for m in search["matches"]} == {"calculator.rb"}

    def test_explore_then_read(self, registry: ToolRegistry, workspace: Path) -> None:
        (workspace / "lib").mkdir()
        (workspace / "lib" / "app.rb").write_text("puts 'hi'\n")

        listing = call(registry, "list_files").to_dict()
        assert listing["entries"] == ["lib/"]

        nested = call(registry, "list_files", path="lib").to_dict()
        assert nested["entries"] == ["app.rb"]

        read = call(registry, "read_file", path="lib/app.rb").to_dict()
        assert read["lines"] == 1
