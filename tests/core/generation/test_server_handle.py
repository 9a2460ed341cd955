"""Unit tests for core.generation.server_handle module."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, cast

import pytest

from core.generation.server_handle import ServerModelHandle
from core.generation.session import GenerationError
from models.generation_models import ChatPrompt, Chunk, GenerateParameters, Stats

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from handlers.async_comm import AsyncHttp
    from models.generation_models import GenerationEvent


def _event(content: str | None = None, *, completion_tokens: int | None = None) -> str:
    body: dict[str, Any] = {"choices": [{"delta": {"content": content} if content is not None else {}}]}
    if completion_tokens is not None:
        body["usage"] = {"completion_tokens": completion_tokens}
    return f"data: {json.dumps(body)}"


class FakeStreamHttp:
    def __init__(self, lines: list[str]) -> None:
        self.lines: list[str] = lines
        self.requests: list[dict[str, Any]] = []
        self.closed: bool = False

    async def stream_lines(self, *, url: str, data: Any = None, headers: Any = None, total_timeout: float = 0.0):
        self.requests.append({"url": url, "data": data})
        try:
            for line in self.lines:
                yield line
        finally:
            self.closed = True


def _handle(http: FakeStreamHttp) -> ServerModelHandle:
    return ServerModelHandle(
        "gemma3n-e2b",
        model_name="/cache/models/gemma",
        server_url="http://127.0.0.1:8080/v1/chat/completions",
        http=cast("AsyncHttp", http),
    )


async def _run(handle: ServerModelHandle) -> list[GenerationEvent]:
    context = await handle.prepare(ChatPrompt(system="sys", user="Translate"))
    stream: AsyncIterator[GenerationEvent] = handle.generate(context, GenerateParameters(max_tokens=64, seed=7))
    return [event async for event in stream]


@pytest.mark.asyncio
async def test_prepare_builds_chat_request() -> None:
    handle = _handle(FakeStreamHttp([]))

    context = await handle.prepare(ChatPrompt(system="sys", user="usr"))

    assert context == {
        "model": "/cache/models/gemma",
        "messages": [{"role": "system", "content": "sys"}, {"role": "user", "content": "usr"}],
    }


@pytest.mark.asyncio
async def test_generate_parses_server_sent_events() -> None:
    http = FakeStreamHttp(
        [
            ": keep-alive",
            _event("Bon"),
            _event(),
            _event("jour"),
            "data: [DONE]",
            _event("ignored after done"),
        ]
    )

    events = await _run(_handle(http))

    assert events[:2] == [Chunk("Bon"), Chunk("jour")]
    assert len(events) == 3
    assert isinstance(events[2], Stats)
    assert events[2].tokens_per_second > 0
    payload = http.requests[0]["data"]
    assert payload["stream"] is True
    assert payload["max_tokens"] == 64
    assert payload["temperature"] == 0.3
    assert payload["seed"] == 7
    assert http.closed is True


@pytest.mark.asyncio
async def test_generate_without_text_reports_no_stats() -> None:
    events = await _run(_handle(FakeStreamHttp([_event(), "data: [DONE]"])))

    assert events == []


@pytest.mark.asyncio
async def test_malformed_event_raises_generation_error() -> None:
    with pytest.raises(GenerationError, match="Malformed stream event"):
        await _run(_handle(FakeStreamHttp([_event("ok"), "data: {not json"])))
