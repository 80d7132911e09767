"""
Core types for the coding agent.

These are the data structures that flow between the agent loop, the
conversation state, the model client and the tools. Messages are
immutable once created: the conversation only ever appends to, or trims,
the sequence that holds them.
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class Role(str, Enum):
    """Message roles in the conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Message:
    """
    A single message in the conversation history.

    The ordered list of messages IS the context sent to the model, so a
    message is never edited after it has been recorded.
    """
    role: Role
    content: str
    timestamp: datetime = field(default_factory=_now)
    name: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[dict[str, Any]] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to OpenAI API format."""
        result: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content,
        }
        if self.name is not None:
            result["name"] = self.name
        if self.tool_call_id is not None:
            result["tool_call_id"] = self.tool_call_id
        if self.tool_calls is not None:
            result["tool_calls"] = self.tool_calls
        return result

    def to_record(self) -> dict[str, Any]:
        """Convert to the persisted snapshot format."""
        record = self.to_dict()
        record["timestamp"] = self.timestamp.isoformat()
        return record

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> "Message":
        """Create from a persisted snapshot record."""
        raw_ts = data.get("timestamp")
        if isinstance(raw_ts, str):
            timestamp = datetime.fromisoformat(raw_ts)
        elif isinstance(raw_ts, datetime):
            timestamp = raw_ts
        else:
            timestamp = _now()
        return cls(
            role=Role(data["role"]),
            content=data.get("content") or "",
            timestamp=timestamp,
            name=data.get("name"),
            tool_call_id=data.get("tool_call_id"),
            tool_calls=data.get("tool_calls"),
        )


@dataclass
class ToolCall:
    """
    A request from the model to execute a tool.

    `arguments_error` is set when the model sent argument text that is not
    a JSON object; the registry reports it back instead of executing.
    """
    id: str
    name: str
    arguments: dict[str, Any]
    arguments_error: str | None = None

    def to_api(self) -> dict[str, Any]:
        """Assistant-message `tool_calls` entry in OpenAI format."""
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.name,
                "arguments": json.dumps(self.arguments),
            },
        }


class ErrorKind(str, Enum):
    """Why a tool call failed."""
    OUTSIDE_WORKSPACE = "outside_workspace"
    NOT_FOUND = "not_found"
    IS_DIRECTORY = "is_directory"
    NOT_A_DIRECTORY = "not_a_directory"
    ALREADY_EXISTS = "already_exists"
    DOES_NOT_EXIST = "does_not_exist"
    IDENTICAL_STRINGS = "identical_strings"
    STRING_NOT_FOUND = "string_not_found"
    NOT_UNIQUE = "not_unique"
    NOT_TEXT = "not_text"
    INVALID_PATTERN = "invalid_pattern"
    INVALID_ARGUMENTS = "invalid_arguments"
    UNKNOWN_TOOL = "unknown_tool"
    USER_DECLINED = "user_declined"
    NOT_ALLOWED = "not_allowed"
    EXECUTION_ERROR = "execution_error"
    INTERNAL = "internal"


@dataclass
class ToolResult:
    """Base class for the outcome of a tool call. Use the two subclasses."""

    @property
    def success(self) -> bool:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    def to_json(self) -> str:
        """Serialize for a tool-role message."""
        return json.dumps(self.to_dict(), default=str)


@dataclass
class ToolSuccess(ToolResult):
    """A tool call that did what it was asked. The payload is tool specific."""
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return dict(self.payload)


@dataclass
class ToolFailure(ToolResult):
    """
    A tool call that failed.

    `hint` is present whenever the caller can recover by retrying with
    different arguments, and absent for fatal or unexpected errors.
    """
    error: str = ""
    kind: ErrorKind = ErrorKind.INTERNAL
    hint: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": self.error,
            "error_type": self.kind.value,
        }
        if self.hint is not None:
            result["hint"] = self.hint
        result.update(self.details)
        return result


@dataclass
class TokenUsage:
    """Session token accumulator. Counts only ever grow."""
    input: int = 0
    output: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output

    def add(self, input_tokens: int = 0, output_tokens: int = 0) -> None:
        """Add the usage reported by one model response."""
        self.input += max(0, int(input_tokens or 0))
        self.output += max(0, int(output_tokens or 0))

    def inline_summary(self) -> str:
        return f"Tokens: {self.total} total (↑{self.input} ↓{self.output})"

    def session_summary(self) -> str:
        return f"Session tokens: {self.total} (in: {self.input}, out: {self.output})"

    def to_dict(self) -> dict[str, int]:
        return {"input": self.input, "output": self.output, "total": self.total}


@dataclass
class ToolCallDelta:
    """A fragment of a streamed tool call, keyed by its index in the response."""
    index: int
    id: str | None = None
    name: str | None = None
    arguments: str = ""


@dataclass
class StreamChunk:
    """
    One element of a streamed model response.

    A chunk can carry a text delta, tool-call fragments, usage metadata,
    or any combination. Chunks are consumed strictly in arrival order.
    """
    text: str | None = None
    tool_calls: list[ToolCallDelta] = field(default_factory=list)
    usage: dict[str, int] | None = None
    finish_reason: str | None = None


class LoopPhase(str, Enum):
    """Where the agent loop is in its turn cycle."""
    AWAITING_INPUT = "awaiting_input"
    DISPATCHING = "dispatching"
    STREAMING_RESPONSE = "streaming_response"
    TOOL_CALL_PENDING = "tool_call_pending"
