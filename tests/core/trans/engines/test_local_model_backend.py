from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, cast

import pytest

from core.generation.session import LocalModelSession, ModelHandle
from core.trans.engines.local_model import LocalModelBackend
from core.trans.interface import BackendUnavailableError
from models.generation_models import GenerateParameters
from models.judge_models import Winner
from models.model_models import ModelDescriptor

if TYPE_CHECKING:
    from core.shared_data import SharedData


class DummyHandle(ModelHandle):
    async def prepare(self, prompt) -> Any:
        return prompt

    async def generate(self, context, parameters):
        _ = context, parameters
        yield  # pragma: no cover


class DummyModelManager:
    def __init__(self, *, handle: ModelHandle | None = None, selected: ModelDescriptor | None = None) -> None:
        self.handle: ModelHandle | None = handle
        self.selected: ModelDescriptor | None = selected
        self.error_message: str | None = None
        self.load_calls: int = 0
        self.load_result: ModelHandle | None = None

    @property
    def is_model_ready(self) -> bool:
        return self.handle is not None

    async def load_selected(self) -> None:
        self.load_calls += 1
        self.handle = self.load_result


def _descriptor(*, downloaded: bool) -> ModelDescriptor:
    return ModelDescriptor(
        id="gemma3n-e2b",
        display_name="Gemma",
        size_estimate="~1.5 GB",
        artifact_name="org/gemma",
        downloaded=downloaded,
    )


async def _backend(manager: DummyModelManager) -> LocalModelBackend:
    backend = LocalModelBackend()
    await backend.initialize(cast("SharedData", SimpleNamespace(model_manager=manager)))
    return backend


async def _open(backend: LocalModelBackend) -> LocalModelSession:
    return await backend.open_session(parameters=GenerateParameters(max_tokens=32), cancel_event=asyncio.Event())


@pytest.mark.asyncio
async def test_initialize_sets_streaming_attributes() -> None:
    backend = await _backend(DummyModelManager())

    assert backend.engine_name == "MLX/Gemma"
    assert backend.judge_slot is Winner.MLX
    assert backend.engine_attributes.streaming is True
    assert backend.is_available is False


@pytest.mark.asyncio
async def test_open_session_uses_loaded_handle() -> None:
    handle = DummyHandle("gemma3n-e2b")
    manager = DummyModelManager(handle=handle, selected=_descriptor(downloaded=True))
    backend = await _backend(manager)

    session: LocalModelSession = await _open(backend)

    assert session.handle is handle
    assert session.parameters.max_tokens == 32
    assert manager.load_calls == 0
    assert backend.is_available is True


@pytest.mark.asyncio
async def test_open_session_loads_downloaded_selection() -> None:
    manager = DummyModelManager(selected=_descriptor(downloaded=True))
    manager.load_result = DummyHandle("gemma3n-e2b")
    backend = await _backend(manager)

    session: LocalModelSession = await _open(backend)

    assert manager.load_calls == 1
    assert session.handle is manager.load_result


@pytest.mark.asyncio
async def test_open_session_without_model() -> None:
    backend = await _backend(DummyModelManager(selected=_descriptor(downloaded=False)))

    with pytest.raises(BackendUnavailableError, match="No local model is loaded"):
        await _open(backend)


@pytest.mark.asyncio
async def test_open_session_reports_load_error() -> None:
    manager = DummyModelManager(selected=_descriptor(downloaded=True))
    manager.error_message = "Failed to load model: server not running"
    backend = await _backend(manager)

    with pytest.raises(BackendUnavailableError, match="server not running"):
        await _open(backend)
    assert manager.load_calls == 1


@pytest.mark.asyncio
async def test_open_session_after_close() -> None:
    backend = await _backend(DummyModelManager(handle=DummyHandle("gemma3n-e2b")))
    await backend.close()

    with pytest.raises(BackendUnavailableError, match="not initialised"):
        await _open(backend)
