"""
Plain-text console implementation of the user interface.

No TUI library: messages are printed with a short prefix per kind, and
model output is written through as it streams.
"""

import sys
from collections.abc import Callable
from typing import TextIO

PREFIXES = {
    "success": "[+] ",
    "warning": "[!] ",
    "error": "[X] ",
    "dim": "    ",
}

YES_ANSWERS = ("y", "yes")
NO_ANSWERS = ("n", "no")


class ConsoleUI:
    """Terminal UI writing to `out` and reading with `input_fn`."""

    def __init__(
        self,
        out: TextIO | None = None,
        input_fn: Callable[[str], str] = input,
    ) -> None:
        self.out = out or sys.stdout
        self.input_fn = input_fn
        self._streaming = False

    def render(self, message: str, kind: str = "info") -> None:
        if self._streaming:
            self.end_stream()
        if kind == "header":
            self._write(f"\n{message}\n{'=' * len(message)}\n")
        elif kind == "code":
            indented = "\n".join(f"    {line}" for line in message.splitlines() or [""])
            self._write(f"{indented}\n")
        else:
            self._write(f"{PREFIXES.get(kind, '')}{message}\n")

    def stream_text(self, delta: str) -> None:
        if not self._streaming:
            self._write("AI > ")
            self._streaming = True
        self._write(delta)

    def end_stream(self) -> None:
        if self._streaming:
            self._write("\n")
            self._streaming = False

    def confirm(self, prompt: str, default: bool = False) -> bool:
        suffix = "[Y/n]" if default else "[y/N]"
        while True:
            answer = self.prompt(f"{prompt} {suffix} ").strip().lower()
            if not answer:
                return default
            if answer in YES_ANSWERS:
                return True
            if answer in NO_ANSWERS:
                return False
            self.render("Please answer y or n.", "warning")

    def prompt(self, label: str) -> str:
        if self._streaming:
            self.end_stream()
        return self.input_fn(label)

    def clear(self) -> None:
        if self.out.isatty():
            self._write("\033[2J\033[H")

    def table(self, rows: list[tuple[str, object]], header: tuple[str, str] | None = None) -> None:
        """Two-column table as aligned plain text."""
        all_rows = [header, *rows] if header else rows
        width = max((len(str(label)) for label, _ in all_rows), default=0)
        if header:
            self._write(f"{header[0]:<{width}}  {header[1]}\n")
            self._write(f"{'-' * width}  {'-' * len(header[1])}\n")
        for label, value in rows:
            self._write(f"{label:<{width}}  {value}\n")

    def _write(self, text: str) -> None:
        self.out.write(text)
        self.out.flush()
