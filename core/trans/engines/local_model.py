from __future__ import annotations

from typing import TYPE_CHECKING

from core.generation.session import LocalModelSession
from core.trans.interface import BackendUnavailableError, EngineAttributes, StreamingBackend
from models.judge_models import Winner
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import asyncio
    import logging

    from core.generation.session import ModelHandle
    from core.models_cache.manager import ModelLifecycleManager
    from core.shared_data import SharedData
    from models.generation_models import GenerateParameters


__all__: list[str] = ["LocalModelBackend"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class LocalModelBackend(StreamingBackend):
    """Streams translations from the model selected in the ``ModelLifecycleManager``."""

    def __init__(self) -> None:
        super().__init__()
        self._models: ModelLifecycleManager | None = None

    @property
    def models(self) -> ModelLifecycleManager:
        if self._models is None:
            msg = "The local model backend is not initialised"
            raise BackendUnavailableError(msg)
        return self._models

    @property
    def is_available(self) -> bool:
        return self._models is not None and self._models.is_model_ready

    @staticmethod
    def fetch_engine_name() -> str:
        return "local_model"

    async def initialize(self, shared: SharedData) -> None:
        logger.debug("'%s' Initialization start", self.__class__.__name__)
        self.engine_attributes = EngineAttributes(name="MLX/Gemma", judge_slot=Winner.MLX, streaming=True)
        self._models = shared.model_manager

    async def open_session(
        self,
        *,
        parameters: GenerateParameters,
        cancel_event: asyncio.Event,
    ) -> LocalModelSession:
        models: ModelLifecycleManager = self.models
        if models.handle is None and models.selected is not None and models.selected.downloaded:
            # A load may still be pending from the startup refresh; it shares the registry's in-flight future.
            await models.load_selected()

        handle: ModelHandle | None = models.handle
        if handle is None:
            msg: str = models.error_message or "No local model is loaded. Download and select a model first."
            raise BackendUnavailableError(msg)

        logger.debug("Opening generation session on '%s'", handle.model_id)
        return LocalModelSession(handle, parameters=parameters, cancel_event=cancel_event)

    async def close(self) -> None:
        self._models = None
        logger.debug("'%s' process termination", self.__class__.__name__)
