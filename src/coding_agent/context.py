"""
Conversation state - the message log the model sees.

The ordered list of messages IS the context sent to the model on every
call. It is bounded by a fixed message count: once it grows past the
maximum, the first two messages (the system prompt and the earliest
grounding context) are kept verbatim along with the most recent ones,
and everything in between is dropped. This is naive truncation, not
summarization: mid-conversation detail is lost.
"""

import logging
from collections import Counter
from typing import Any

from coding_agent.config import HistoryConfig
from coding_agent.storage import HistoryStore
from coding_agent.types import Message, Role, TokenUsage

logger = logging.getLogger(__name__)

PRESERVED_HEAD = 2


class ConversationState:
    """
    Owns the message history and the session token usage for one session.

    When persistence is enabled the history is restored from the store on
    construction and saved after every append.
    """

    def __init__(
        self,
        config: HistoryConfig | None = None,
        store: HistoryStore | None = None,
    ) -> None:
        self.config = config or HistoryConfig()
        if store is None and self.config.save:
            store = HistoryStore(self.config.history_file)
        self.store = store
        self.usage = TokenUsage()
        self._messages: list[Message] = []
        self.trimmed_count = 0

        if self.store is not None:
            self._messages = self.store.load()
            self.trim()

    @property
    def messages(self) -> list[Message]:
        """A copy of the current history."""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: Message) -> None:
        """Record a message, trim, and persist if enabled."""
        self._messages.append(message)
        self.trim()
        self.save()

    def add_user_message(self, content: str) -> Message:
        message = Message(role=Role.USER, content=content)
        self.append(message)
        return message

    def add_assistant_message(
        self, content: str, tool_calls: list[dict[str, Any]] | None = None
    ) -> Message:
        message = Message(role=Role.ASSISTANT, content=content, tool_calls=tool_calls)
        self.append(message)
        return message

    def add_tool_result(self, tool_call_id: str, name: str, content: str) -> Message:
        message = Message(
            role=Role.TOOL, content=content, name=name, tool_call_id=tool_call_id
        )
        self.append(message)
        return message

    def ensure_system_prompt(self, text: str) -> None:
        """Put the system prompt first unless the history already starts with one."""
        if self._messages and self._messages[0].role == Role.SYSTEM:
            return
        self._messages.insert(0, Message(role=Role.SYSTEM, content=text))
        self.trim()
        self.save()

    def trim(self) -> int:
        """
        Enforce the maximum length. Returns the number of messages dropped.

        Keeps the first two messages plus the most recent max-2.
        """
        maximum = self.config.max_messages
        size = len(self._messages)
        if size <= maximum:
            return 0

        keep_recent = max(0, maximum - PRESERVED_HEAD)
        preserved = self._messages[:PRESERVED_HEAD]
        recent = self._messages[size - keep_recent:] if keep_recent else []
        self._messages = preserved + recent

        dropped = size - len(self._messages)
        self.trimmed_count += dropped
        logger.info(f"Trimmed conversation history: dropped {dropped} messages")
        return dropped

    def recent_context(self, limit: int = 10) -> list[dict[str, str]]:
        """The last `limit` messages as {role, content} records."""
        if limit <= 0:
            return []
        return [
            {"role": m.role.value, "content": m.content}
            for m in self._messages[-limit:]
        ]

    def estimate_tokens(self) -> int:
        """Rough token count for the whole history (characters / 4 per message)."""
        chars_per_token = self.config.chars_per_token
        return sum(int(len(m.content) / chars_per_token) for m in self._messages)

    def context_messages(self) -> list[dict[str, Any]]:
        """
        The history in API format, ready to send to the model.

        Trimming can separate tool results from the assistant message that
        requested them. Such orphaned results are left out, and tool calls
        with no recorded result are stripped from their assistant message.
        """
        answered = {m.tool_call_id for m in self._messages if m.role == Role.TOOL}
        requested: set[str] = set()
        payload: list[dict[str, Any]] = []

        for message in self._messages:
            if message.role == Role.TOOL:
                if message.tool_call_id not in requested:
                    logger.debug(f"Dropping orphaned tool result {message.tool_call_id}")
                    continue
                payload.append(message.to_dict())
                continue

            record = message.to_dict()
            if message.tool_calls:
                calls = [c for c in message.tool_calls if c.get("id") in answered]
                requested.update(c["id"] for c in calls)
                if calls:
                    record["tool_calls"] = calls
                else:
                    record.pop("tool_calls", None)
                    if not message.content:
                        continue
            payload.append(record)

        return payload

    def stats(self) -> dict[str, int]:
        """Message counts by role."""
        counts = Counter(m.role.value for m in self._messages)
        return {
            "total": len(self._messages),
            "system": counts.get("system", 0),
            "user": counts.get("user", 0),
            "assistant": counts.get("assistant", 0),
            "tool": counts.get("tool", 0),
        }

    def save(self) -> None:
        if self.store is not None:
            self.store.save(self._messages)
