"""
Tests for the streaming LLM client.

HTTP is served by httpx.MockTransport, so no network is touched.
"""

import json
from collections.abc import Iterator

import httpx
import pytest

from coding_agent.config import LLMConfig
from coding_agent.llm import LLMClient, LLMError, ToolCallAssembler, parse_stream_event
from coding_agent.types import ToolCallDelta


def sse(*events: dict) -> bytes:
    lines = [f"data: {json.dumps(event)}\n\n" for event in events]
    lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def text_event(text: str) -> dict:
    return {"choices": [{"index": 0, "delta": {"content": text}, "finish_reason": None}]}


def tool_event(index: int, arguments: str, call_id: str | None = None,
               name: str | None = None) -> dict:
    function: dict = {"arguments": arguments}
    if name:
        function["name"] = name
    call: dict = {"index": index, "function": function}
    if call_id:
        call["id"] = call_id
        call["type"] = "function"
    return {"choices": [{"index": 0, "delta": {"tool_calls": [call]}, "finish_reason": None}]}


USAGE_EVENT = {"choices": [], "usage": {"prompt_tokens": 12, "completion_tokens": 3}}


def make_client(handler, **kwargs) -> LLMClient:
    config = LLMConfig(base_url="http://llm.test/v1", api_key="sk-test", model="test-model")
    return LLMClient(config, transport=httpx.MockTransport(handler), **kwargs)


class TestStreaming:
    """Test the chunk sequence produced from a server-sent event stream."""

    def test_text_and_usage(self) -> None:
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=sse(
                text_event("Hel"), text_event("lo"), USAGE_EVENT,
            ))

        with make_client(handler) as client:
            chunks = list(client.stream([{"role": "user", "content": "hi"}]))

        assert [c.text for c in chunks if c.text] == ["Hel", "lo"]
        assert chunks[-1].usage == {"input": 12, "output": 3}

        request = requests[0]
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["model"] == "test-model"
        assert body["stream"] is True
        assert body["stream_options"] == {"include_usage": True}
        assert "tools" not in body

    def test_tools_sent_when_given(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, content=sse(text_event("ok")))

        tools = [{"type": "function", "function": {"name": "list_files"}}]
        with make_client(handler) as client:
            list(client.stream([{"role": "user", "content": "hi"}], tools))

        assert bodies[0]["tools"] == tools

    def test_tool_call_fragments(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=sse(
                tool_event(0, "", call_id="call_a", name="read_file"),
                tool_event(0, '{"path": '),
                tool_event(0, '"main.py"}'),
            ))

        assembler = ToolCallAssembler()
        with make_client(handler) as client:
            for chunk in client.stream([{"role": "user", "content": "read"}]):
                for delta in chunk.tool_calls:
                    assembler.add(delta)

        (call,) = assembler.build()
        assert call.id == "call_a"
        assert call.name == "read_file"
        assert call.arguments == {"path": "main.py"}
        assert call.arguments_error is None

    def test_malformed_events_are_skipped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            body = b": keep-alive\n\ndata: {not json\n\n" + sse(text_event("fine"))
            return httpx.Response(200, content=body)

        with make_client(handler) as client:
            chunks = list(client.stream([]))

        assert [c.text for c in chunks] == ["fine"]


class TestErrors:
    """Test HTTP errors and retries."""

    def test_client_error_raises_immediately(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(401, text="bad key")

        with make_client(handler, retry_delay=0) as client:
            with pytest.raises(LLMError, match="HTTP 401"):
                list(client.stream([]))
        assert calls == 1

    def test_server_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        with make_client(handler, retry_delay=0) as client:
            with pytest.raises(LLMError, match="HTTP 500: boom"):
                list(client.stream([]))

    def test_503_is_retried(self) -> None:
        responses = [
            httpx.Response(503, text="busy"),
            httpx.Response(200, content=sse(text_event("done"))),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        with make_client(handler, retry_delay=0) as client:
            chunks = list(client.stream([]))

        assert chunks[0].text == "done"
        assert responses == []

    def test_rate_limit_exhausts_retries(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(429, text="slow down", headers={"Retry-After": "0"})

        with make_client(handler, max_retries=2, retry_delay=0) as client:
            with pytest.raises(LLMError, match="after 3 attempts"):
                list(client.stream([]))
        assert calls == 3

    def test_connection_error_retried_then_raises(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            raise httpx.ConnectError("refused", request=request)

        with make_client(handler, max_retries=1, retry_delay=0) as client:
            with pytest.raises(LLMError):
                list(client.stream([]))
        assert calls == 2

    def test_break_after_output_is_not_replayed(self) -> None:
        calls = 0

        def body() -> Iterator[bytes]:
            yield f"data: {json.dumps(text_event('partial'))}\n\n".encode()
            raise httpx.ReadError("connection reset")

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, content=body())

        received = []
        with make_client(handler, retry_delay=0) as client:
            with pytest.raises(LLMError, match="interrupted"):
                for chunk in client.stream([]):
                    received.append(chunk.text)

        assert received == ["partial"]
        assert calls == 1

    def test_error_event_in_stream(self) -> None:
        with pytest.raises(LLMError, match="context length exceeded"):
            parse_stream_event({"error": {"message": "context length exceeded"}})


class TestParseStreamEvent:
    """Test decoding of individual events."""

    def test_empty_event(self) -> None:
        assert parse_stream_event({"choices": [{"index": 0, "delta": {}}]}) is None

    def test_finish_reason_only(self) -> None:
        chunk = parse_stream_event(
            {"choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}]}
        )
        assert chunk is not None
        assert chunk.finish_reason == "stop"
        assert chunk.text is None


class TestToolCallAssembler:
    """Test reassembly of streamed tool calls."""

    def test_multiple_calls_in_index_order(self) -> None:
        assembler = ToolCallAssembler()
        assembler.add(ToolCallDelta(index=1, id="b", name="list_files", arguments="{}"))
        assembler.add(ToolCallDelta(index=0, id="a", name="read_file",
                                    arguments='{"path": "x"}'))

        calls = assembler.build()

        assert [c.id for c in calls] == ["a", "b"]
        assert calls[1].arguments == {}

    def test_empty_assembler_is_falsy(self) -> None:
        assert not ToolCallAssembler()
        assert ToolCallAssembler().build() == []

    def test_missing_ids_are_unique_across_responses(self) -> None:
        """Calls without a provider id must not collide from one step to the next."""
        ids = []
        for _ in range(2):
            assembler = ToolCallAssembler()
            assembler.add(ToolCallDelta(index=0, name="list_files"))
            ids.append(assembler.build()[0].id)

        assert ids[0] != ids[1]
        assert all(i.startswith("call_") for i in ids)

    @pytest.mark.parametrize("text,expected", [
        ('{"path": ', "invalid JSON"),
        ('["a"]', "arguments must be a JSON object"),
    ])
    def test_bad_arguments_are_flagged(self, text: str, expected: str) -> None:
        assembler = ToolCallAssembler()
        assembler.add(ToolCallDelta(index=0, id="a", name="read_file", arguments=text))

        (call,) = assembler.build()

        assert call.arguments == {}
        assert expected in call.arguments_error
