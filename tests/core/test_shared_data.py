"""Unit tests for core.shared_data module."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from core.models_cache.store import HubModelStore
from core.shared_data import SharedData
from models.config_models import Config

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def config(tmp_path: Path) -> Config:
    cfg = Config()
    cfg.LOCAL_MODEL.CACHE_ROOT = str(tmp_path / "cache")
    cfg.LOCAL_MODEL.MAX_CACHED_MODELS = 3
    cfg.LOCAL_MODEL.DEFAULT_MODEL = "gemma3n-e4b"
    cfg.TRANSLATION.ENGINE = []
    return cfg


@pytest.mark.asyncio
async def test_async_init_wires_shared_services(config: Config, tmp_path: Path) -> None:
    retries: list[int] = []
    shared = SharedData(config)

    await shared.async_init(on_retry=lambda attempt, _total, _err: retries.append(attempt))

    assert shared.config is config
    assert isinstance(shared.store, HubModelStore)
    assert shared.store.cache_root == (tmp_path / "cache").resolve()
    assert shared.registry.max_cached == 3
    assert shared.model_manager.registry is shared.registry
    assert shared.model_manager.default_model_id == "gemma3n-e4b"
    assert shared.judge.http is shared.http
    assert shared.judge.on_retry is not None
    assert shared.trans_manager.shared is shared

    await shared.close()
    assert shared.http.is_open is False
