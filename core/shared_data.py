"""Shared data management for the comparison components.

This module defines the SharedData class, a centralized container for the resources used across components:
configuration, the HTTP client, the model handle registry and lifecycle manager, the translation backends and
the judge client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.judge.client import JudgeClient
from core.models_cache.manager import ModelLifecycleManager
from core.models_cache.registry import ModelHandleRegistry
from core.models_cache.store import HubModelStore
from core.trans.manager import TransManager
from handlers.async_comm import AsyncHttp
from utils.file_utils import FileUtils

if TYPE_CHECKING:
    from pathlib import Path

    from core.judge.client import RetryCallback
    from core.models_cache.store import ModelStore
    from models.config_models import Config


__all__: list[str] = ["SharedData"]


@dataclass
class SharedData:
    _config: Config = field()
    _http: AsyncHttp = field(init=False)
    _registry: ModelHandleRegistry = field(init=False)
    _store: ModelStore = field(init=False)
    _model_manager: ModelLifecycleManager = field(init=False)
    _judge: JudgeClient = field(init=False)
    _trans_manager: TransManager = field(init=False)

    async def async_init(self, *, store: ModelStore | None = None, on_retry: RetryCallback | None = None) -> None:
        """Create the shared services.

        Args:
            store (ModelStore | None): Model store to use instead of the hub-backed default.
            on_retry (RetryCallback | None): Forwarded to the judge client.
        """
        local = self.config.LOCAL_MODEL
        cache_root: Path = FileUtils.resolve_path(local.CACHE_ROOT)

        self._http = AsyncHttp()
        self._registry = ModelHandleRegistry(local.MAX_CACHED_MODELS)
        self._store = store or HubModelStore(
            cache_root=cache_root, hub_url=local.HUB_URL, server_url=local.SERVER, http=self._http
        )
        self._model_manager = ModelLifecycleManager(
            store=self._store,
            registry=self._registry,
            cache_root=cache_root,
            default_model_id=local.DEFAULT_MODEL,
        )
        self._judge = JudgeClient(self.config, self._http, on_retry=on_retry)
        self._trans_manager = TransManager(self)

    async def close(self) -> None:
        """Shut down backends, release model handles and close the HTTP session."""
        await self._trans_manager.shutdown_engines()
        await self._model_manager.close()
        await self._http.close()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def http(self) -> AsyncHttp:
        return self._http

    @property
    def registry(self) -> ModelHandleRegistry:
        return self._registry

    @property
    def store(self) -> ModelStore:
        return self._store

    @property
    def model_manager(self) -> ModelLifecycleManager:
        return self._model_manager

    @property
    def judge(self) -> JudgeClient:
        return self._judge

    @property
    def trans_manager(self) -> TransManager:
        return self._trans_manager
