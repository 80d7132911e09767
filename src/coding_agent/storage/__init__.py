"""Storage for conversation history."""

from coding_agent.storage.history_store import HistoryStore

__all__ = ["HistoryStore"]
