"""Unit tests for core.models_cache.registry module."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from core.generation.session import ModelHandle
from core.models_cache.registry import ModelHandleRegistry


class StubHandle(ModelHandle):
    async def prepare(self, prompt) -> Any:
        return prompt

    async def generate(self, context, parameters):
        _ = context, parameters
        yield  # pragma: no cover


class CountingLoader:
    def __init__(self, model_id: str, *, error: Exception | None = None) -> None:
        self.model_id: str = model_id
        self.error: Exception | None = error
        self.calls: int = 0
        self.release: asyncio.Event = asyncio.Event()

    async def __call__(self) -> ModelHandle:
        self.calls += 1
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return StubHandle(self.model_id)


def test_max_cached_must_be_positive() -> None:
    with pytest.raises(ValueError, match="at least 1"):
        ModelHandleRegistry(0)


@pytest.mark.asyncio
async def test_concurrent_loads_share_one_underlying_load() -> None:
    registry = ModelHandleRegistry()
    loader = CountingLoader("gemma3n-e2b")

    waiters = [asyncio.create_task(registry.get_or_load("gemma3n-e2b", loader)) for _ in range(5)]
    await asyncio.sleep(0)
    assert registry.is_loading("gemma3n-e2b")
    loader.release.set()
    handles = await asyncio.gather(*waiters)

    assert loader.calls == 1
    assert all(handle is handles[0] for handle in handles)
    assert registry.cached("gemma3n-e2b") is handles[0]
    assert not registry.is_loading("gemma3n-e2b")


@pytest.mark.asyncio
async def test_cached_handle_is_returned_without_loading() -> None:
    registry = ModelHandleRegistry()
    handle = StubHandle("gemma3n-e2b")
    await registry.put("gemma3n-e2b", handle)
    loader = CountingLoader("gemma3n-e2b")

    assert await registry.get_or_load("gemma3n-e2b", loader) is handle
    assert loader.calls == 0


@pytest.mark.asyncio
async def test_failed_load_clears_inflight_mark_and_can_be_retried() -> None:
    registry = ModelHandleRegistry()
    failing = CountingLoader("gemma3n-e2b", error=OSError("weights corrupted"))
    failing.release.set()

    with pytest.raises(OSError, match="weights corrupted"):
        await registry.get_or_load("gemma3n-e2b", failing)
    assert not registry.is_loading("gemma3n-e2b")
    assert registry.cached("gemma3n-e2b") is None

    working = CountingLoader("gemma3n-e2b")
    working.release.set()
    handle = await registry.get_or_load("gemma3n-e2b", working)
    assert handle.model_id == "gemma3n-e2b"
    assert working.calls == 1


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_load() -> None:
    registry = ModelHandleRegistry()
    loader = CountingLoader("gemma3n-e2b")

    impatient = asyncio.create_task(registry.get_or_load("gemma3n-e2b", loader))
    patient = asyncio.create_task(registry.get_or_load("gemma3n-e2b", loader))
    await asyncio.sleep(0)
    impatient.cancel()
    loader.release.set()

    handle = await patient
    assert handle.model_id == "gemma3n-e2b"
    assert impatient.cancelled()
    assert loader.calls == 1


@pytest.mark.asyncio
async def test_least_recently_used_handle_is_evicted(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO)
    registry = ModelHandleRegistry(max_cached=2)
    await registry.put("a", StubHandle("a"))
    await registry.put("b", StubHandle("b"))

    touch = CountingLoader("a")
    await registry.get_or_load("a", touch)
    await registry.put("c", StubHandle("c"))

    assert registry.cached_ids == ["a", "c"]
    assert touch.calls == 0
    assert any("Evicted model handle 'b'" in rec.message for rec in caplog.records)


@pytest.mark.asyncio
async def test_evict_and_clear() -> None:
    registry = ModelHandleRegistry()
    await registry.put("a", StubHandle("a"))

    assert await registry.evict("a") is True
    assert await registry.evict("a") is False

    await registry.put("b", StubHandle("b"))
    await registry.clear()
    assert registry.cached_ids == []
