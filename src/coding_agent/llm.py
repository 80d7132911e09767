"""
LLM Client - streaming chat completions over an OpenAI-compatible API.

Works with any server exposing /chat/completions with server-sent
events (OpenAI, vLLM, Ollama, ...). The response is consumed as an
ordered, finite sequence of StreamChunk objects: text deltas,
tool-call fragments and usage metadata, exactly in arrival order.

Includes timeout and retry logic for resilience against API hangs.
Retries only happen before the first chunk is yielded: once output
has reached the user, a failure is reported instead of replayed.
"""

import json
import logging
import time
import uuid
from collections.abc import Iterator
from typing import Any

import httpx

from coding_agent.config import LLMConfig
from coding_agent.types import StreamChunk, ToolCall, ToolCallDelta

logger = logging.getLogger(__name__)

# Default timeout configuration (in seconds)
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_READ_TIMEOUT = 180.0  # LLM responses can take a while
DEFAULT_WRITE_TIMEOUT = 10.0
DEFAULT_POOL_TIMEOUT = 10.0

# Retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 5.0

RETRYABLE_STATUS = (429, 503)


class LLMError(Exception):
    """Error from the LLM client."""
    pass


class _RetryableStatus(Exception):
    def __init__(self, status_code: int, wait: float, text: str) -> None:
        super().__init__(f"HTTP {status_code}: {text}")
        self.status_code = status_code
        self.wait = wait


class LLMClient:
    """
    Streaming client for OpenAI-compatible LLM APIs.

    Synchronous by design: the agent loop has exactly one outstanding
    model call at a time.
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client with configuration.

        Args:
            config: LLM configuration (model, API key, etc.)
            max_retries: Maximum number of retries for timeout/network errors
            retry_delay: Seconds to wait before retrying
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.config = config or LLMConfig.from_env()
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        timeout = httpx.Timeout(
            connect=DEFAULT_CONNECT_TIMEOUT,
            read=DEFAULT_READ_TIMEOUT,
            write=DEFAULT_WRITE_TIMEOUT,
            pool=DEFAULT_POOL_TIMEOUT,
        )

        self._client = httpx.Client(
            base_url=self.config.base_url,
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    def build_payload(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        if tools:
            payload["tools"] = tools
        return payload

    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> Iterator[StreamChunk]:
        """
        Send a chat completion request and yield the response as it arrives.

        Raises:
            LLMError: on a non-retryable HTTP error, when all retries are
                exhausted, or when the stream breaks after output started
        """
        payload = self.build_payload(messages, tools)
        last_error: Exception | None = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                wait = getattr(last_error, "wait", self.retry_delay)
                logger.info(f"Retry attempt {attempt}/{self.max_retries} after {wait}s delay...")
                time.sleep(wait)

            logger.debug(f"Sending chat request with {len(messages)} messages (attempt {attempt + 1})")
            started = False
            try:
                with self._client.stream("POST", "/chat/completions", json=payload) as response:
                    if response.status_code >= 400:
                        response.read()
                        self._raise_for_status(response)
                    for chunk in self._iter_chunks(response):
                        started = True
                        yield chunk
                return

            except _RetryableStatus as e:
                logger.warning(f"{e} (attempt {attempt + 1})")
                last_error = e
                continue

            except httpx.TimeoutException as e:
                if started:
                    raise LLMError(f"Stream timed out: {e}") from e
                logger.warning(f"Request timed out (attempt {attempt + 1}): {e}")
                last_error = e
                continue

            except httpx.RequestError as e:
                if started:
                    raise LLMError(f"Stream interrupted: {e}") from e
                logger.warning(f"Request error (attempt {attempt + 1}): {e}")
                last_error = e
                continue

        logger.error(f"All {self.max_retries + 1} attempts failed. Last error: {last_error}")
        raise LLMError(
            f"Request failed after {self.max_retries + 1} attempts: {last_error}"
        ) from last_error

    def _raise_for_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status in RETRYABLE_STATUS:
            wait = self.retry_delay
            retry_after = response.headers.get("Retry-After")
            if retry_after:
                try:
                    wait = float(retry_after)
                except ValueError:
                    pass
            raise _RetryableStatus(status, wait, response.text)

        logger.error(f"HTTP error: {status} - {response.text}")
        raise LLMError(f"HTTP {status}: {response.text}")

    def _iter_chunks(self, response: httpx.Response) -> Iterator[StreamChunk]:
        for line in response.iter_lines():
            line = line.strip()
            if not line or line.startswith(":") or not line.startswith("data:"):
                continue
            data = line[len("data:"):].strip()
            if data == "[DONE]":
                break
            try:
                event = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Skipping malformed stream event: {data[:200]}")
                continue
            chunk = parse_stream_event(event)
            if chunk is not None:
                yield chunk

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "LLMClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def parse_stream_event(event: dict[str, Any]) -> StreamChunk | None:
    """Turn one decoded SSE event into a StreamChunk (None if it carries nothing)."""
    if "error" in event:
        error = event["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise LLMError(f"Stream error: {message}")

    chunk = StreamChunk()

    usage = event.get("usage")
    if usage:
        chunk.usage = {
            "input": int(usage.get("prompt_tokens") or 0),
            "output": int(usage.get("completion_tokens") or 0),
        }

    choices = event.get("choices") or []
    if choices:
        choice = choices[0]
        delta = choice.get("delta") or {}
        chunk.text = delta.get("content") or None
        chunk.finish_reason = choice.get("finish_reason")
        for tc in delta.get("tool_calls") or []:
            function = tc.get("function") or {}
            chunk.tool_calls.append(ToolCallDelta(
                index=int(tc.get("index", 0)),
                id=tc.get("id"),
                name=function.get("name"),
                arguments=function.get("arguments") or "",
            ))

    if chunk.text is None and not chunk.tool_calls and chunk.usage is None \
            and chunk.finish_reason is None:
        return None
    return chunk


class ToolCallAssembler:
    """
    Accumulates streamed tool-call fragments into complete ToolCalls.

    Fragments are keyed by their index in the response: the first
    fragment for an index carries the id and name, later ones append
    to the argument text.
    """

    def __init__(self) -> None:
        self._calls: dict[int, dict[str, Any]] = {}

    def add(self, delta: ToolCallDelta) -> None:
        call = self._calls.setdefault(
            delta.index, {"id": None, "name": "", "arguments": ""}
        )
        if delta.id:
            call["id"] = delta.id
        if delta.name:
            call["name"] += delta.name
        call["arguments"] += delta.arguments

    def __bool__(self) -> bool:
        return bool(self._calls)

    def build(self) -> list[ToolCall]:
        """The assembled calls in index order."""
        calls: list[ToolCall] = []
        for index in sorted(self._calls):
            raw = self._calls[index]
            arguments: dict[str, Any] = {}
            error: str | None = None
            text = raw["arguments"].strip()
            if text:
                try:
                    parsed = json.loads(text)
                except json.JSONDecodeError as e:
                    error = f"invalid JSON ({e.msg})"
                else:
                    if isinstance(parsed, dict):
                        arguments = parsed
                    else:
                        error = "arguments must be a JSON object"
            calls.append(ToolCall(
                id=raw["id"] or f"call_{uuid.uuid4().hex[:24]}",
                name=raw["name"],
                arguments=arguments,
                arguments_error=error,
            ))
        return calls
