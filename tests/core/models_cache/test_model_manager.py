"""Unit tests for core.models_cache.manager module."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import pytest

from core.generation.session import ModelHandle
from core.models_cache.manager import DOWNLOAD_PROGRESS_CAP, ModelLifecycleManager
from core.models_cache.registry import ModelHandleRegistry
from core.models_cache.store import ModelDownloadError, ModelLoadError, ModelStore, UnknownModelError
from models.model_models import ModelDescriptor

if TYPE_CHECKING:
    from pathlib import Path

    from core.models_cache.store import ProgressCallback


class StubHandle(ModelHandle):
    async def prepare(self, prompt) -> Any:
        return prompt

    async def generate(self, context, parameters):
        _ = context, parameters
        yield  # pragma: no cover


class FakeStore(ModelStore):
    def __init__(self) -> None:
        self.loads: list[str] = []
        self.load_error: Exception | None = None
        self.download_error: Exception | None = None
        self.progress_seen: list[float] = []
        self.block_download: asyncio.Event | None = None

    async def load(self, descriptor: ModelDescriptor) -> ModelHandle:
        self.loads.append(descriptor.id)
        if self.load_error is not None:
            raise self.load_error
        return StubHandle(descriptor.id)

    async def download(self, descriptor: ModelDescriptor, progress_callback: ProgressCallback) -> ModelHandle:
        progress_callback(0.5)
        self.progress_seen.append(descriptor.progress)
        if self.block_download is not None:
            await self.block_download.wait()
        if self.download_error is not None:
            raise self.download_error
        progress_callback(1.0)
        self.progress_seen.append(descriptor.progress)
        return StubHandle(descriptor.id)


CATALOG: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(id="small", display_name="Small", size_estimate="~1 GB", artifact_name="org/small"),
    ModelDescriptor(id="large", display_name="Large", size_estimate="~2 GB", artifact_name="org/large"),
)


def _write_artifacts(cache_root: Path, artifact_name: str) -> None:
    model_dir: Path = cache_root / "models" / artifact_name
    model_dir.mkdir(parents=True)
    (model_dir / "config.json").write_text("{}", encoding="utf-8")
    (model_dir / "model.safetensors").write_bytes(b"\0")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def manager(tmp_path: Path, store: FakeStore) -> ModelLifecycleManager:
    return ModelLifecycleManager(
        store=store,
        registry=ModelHandleRegistry(),
        cache_root=tmp_path,
        default_model_id="large",
        catalog=CATALOG,
    )


def test_list_models_returns_snapshot_in_catalog_order(manager: ModelLifecycleManager) -> None:
    models: list[ModelDescriptor] = manager.list_models()
    models[0].downloaded = True

    assert [m.id for m in models] == ["small", "large"]
    assert manager.get("small").downloaded is False


def test_get_unknown_model(manager: ModelLifecycleManager) -> None:
    with pytest.raises(UnknownModelError, match="Available: small, large"):
        manager.get("huge")


@pytest.mark.asyncio
async def test_refresh_selects_default_and_loads_it(
    tmp_path: Path, manager: ModelLifecycleManager, store: FakeStore
) -> None:
    _write_artifacts(tmp_path, "org/small")
    _write_artifacts(tmp_path, "org/large")

    await manager.refresh_download_state()

    assert manager.get("small").downloaded is True
    assert manager.selected is not None
    assert manager.selected.id == "large"
    assert manager.is_model_ready
    assert store.loads == ["large"]


@pytest.mark.asyncio
async def test_refresh_falls_back_to_first_downloaded(tmp_path: Path, manager: ModelLifecycleManager) -> None:
    _write_artifacts(tmp_path, "org/small")

    await manager.refresh_download_state()

    assert manager.selected is not None
    assert manager.selected.id == "small"
    assert manager.get("large").downloaded is False


@pytest.mark.asyncio
async def test_refresh_with_nothing_downloaded(manager: ModelLifecycleManager, store: FakeStore) -> None:
    await manager.refresh_download_state()

    assert manager.selected is None
    assert manager.handle is None
    assert store.loads == []


@pytest.mark.asyncio
async def test_load_failure_is_recorded(tmp_path: Path, manager: ModelLifecycleManager, store: FakeStore) -> None:
    _write_artifacts(tmp_path, "org/small")
    store.load_error = ModelLoadError("server not running")

    await manager.refresh_download_state()

    assert manager.handle is None
    assert manager.is_loading_model is False
    assert manager.loading_status == "Model loading failed"
    assert manager.error_message is not None
    assert "server not running" in manager.error_message


@pytest.mark.asyncio
async def test_load_requires_download(manager: ModelLifecycleManager) -> None:
    with pytest.raises(ModelLoadError, match="is not downloaded"):
        await manager.load("small")


@pytest.mark.asyncio
async def test_download_caps_progress_until_done(manager: ModelLifecycleManager, store: FakeStore) -> None:
    await manager.download("small")

    descriptor: ModelDescriptor = manager.get("small")
    assert store.progress_seen == [0.5, DOWNLOAD_PROGRESS_CAP]
    assert descriptor.downloaded is True
    assert descriptor.downloading is False
    assert descriptor.progress == 1.0
    assert manager.selected is descriptor
    assert manager.is_model_ready
    assert manager.registry.cached("small") is manager.handle


@pytest.mark.asyncio
async def test_download_failure_resets_descriptor(manager: ModelLifecycleManager, store: FakeStore) -> None:
    store.download_error = ModelDownloadError("disk full")

    await manager.download("small")

    descriptor: ModelDescriptor = manager.get("small")
    assert descriptor.downloaded is False
    assert descriptor.downloading is False
    assert descriptor.progress == 0.0
    assert manager.error_message == "Download failed: disk full"


@pytest.mark.asyncio
async def test_download_unknown_model_records_error(manager: ModelLifecycleManager) -> None:
    await manager.download("huge")

    assert manager.error_message is not None
    assert "Unknown model 'huge'" in manager.error_message


@pytest.mark.asyncio
async def test_new_download_supersedes_previous(manager: ModelLifecycleManager, store: FakeStore) -> None:
    store.block_download = asyncio.Event()
    first = asyncio.create_task(manager.download("small"))
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert manager.get("small").downloading is True

    store.block_download = None
    await manager.download("large")
    await first

    assert manager.get("small").downloading is False
    assert manager.get("small").progress == 0.0
    assert manager.get("large").downloaded is True


@pytest.mark.asyncio
async def test_delete_removes_artifacts_and_clears_selection(tmp_path: Path, manager: ModelLifecycleManager) -> None:
    _write_artifacts(tmp_path, "org/large")
    await manager.refresh_download_state()
    assert manager.selected is not None

    await manager.delete("large")

    assert not (tmp_path / "models" / "org" / "large").exists()
    assert manager.get("large").downloaded is False
    assert manager.selected is None
    assert manager.handle is None
    assert manager.registry.cached("large") is None


@pytest.mark.asyncio
async def test_delete_missing_artifacts_is_not_an_error(manager: ModelLifecycleManager) -> None:
    await manager.delete("small")

    assert manager.error_message is None


@pytest.mark.asyncio
async def test_select_not_downloaded_drops_handle(tmp_path: Path, manager: ModelLifecycleManager) -> None:
    _write_artifacts(tmp_path, "org/large")
    await manager.refresh_download_state()

    await manager.select("small")

    assert manager.selected is not None
    assert manager.selected.id == "small"
    assert manager.handle is None
