"""
HistoryStore - persistence for conversation history.

The snapshot is a JSON file holding an ordered list of message records
({role, content, timestamp} plus the optional API fields). History is
nice to have, not critical: load and save failures are logged and the
session carries on.
"""

import json
import logging
from pathlib import Path

from coding_agent.types import Message

logger = logging.getLogger(__name__)


class HistoryStore:
    """Loads and saves a snapshot of the message list."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> list[Message]:
        """Return the saved messages, or an empty list if there are none."""
        if not self.exists():
            return []
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError("history file does not contain a list")
            messages = [Message.from_record(record) for record in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Failed to load history from {self.path}: {e}")
            return []
        logger.debug(f"Loaded {len(messages)} messages from {self.path}")
        return messages

    def save(self, messages: list[Message]) -> bool:
        """Write the snapshot. Returns False if it could not be written."""
        if not messages:
            return False
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump([m.to_record() for m in messages], f, indent=2)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to save history to {self.path}: {e}")
            return False
        return True

