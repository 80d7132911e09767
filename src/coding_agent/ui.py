"""
The user-interface seam.

The agent loop and the tools never print directly. They talk to an
object implementing `UserInterface`; the CLI supplies a console
implementation and tests supply recording stubs.
"""

from typing import Protocol


class UserInterface(Protocol):
    """What the core needs from whoever is showing things to the user."""

    def render(self, message: str, kind: str = "info") -> None:
        """Show a message. kind is one of info/success/warning/error/code/dim/header."""
        ...

    def stream_text(self, delta: str) -> None:
        """Show a fragment of model output as soon as it arrives."""
        ...

    def end_stream(self) -> None:
        """Finish a streamed reply."""
        ...

    def confirm(self, prompt: str, default: bool = False) -> bool:
        """Ask a yes/no question."""
        ...

    def prompt(self, label: str) -> str:
        """Read a line of user input. Raises EOFError when input is closed."""
        ...

    def clear(self) -> None:
        """Clear the screen."""
        ...


class NullUI:
    """Silent interface that declines every confirmation."""

    def render(self, message: str, kind: str = "info") -> None:
        pass

    def stream_text(self, delta: str) -> None:
        pass

    def end_stream(self) -> None:
        pass

    def confirm(self, prompt: str, default: bool = False) -> bool:
        return False

    def prompt(self, label: str) -> str:
        raise EOFError

    def clear(self) -> None:
        pass
