from __future__ import annotations

from typing import TYPE_CHECKING

from core.trans.engines import (
    DeeplTranslation,  # noqa: F401
    FoundationModelBackend,  # noqa: F401
    LocalModelBackend,  # noqa: F401
)
from core.trans.interface import TransInterface, TranslateExceptionError
from core.trans.orchestrator import TranslationOrchestrator
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.shared_data import SharedData


__all__: list[str] = ["TransManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class TransManager:
    """Owns the translation backends named in ``TRANSLATION.ENGINE`` and one orchestrator per backend.

    Backends that fail to initialise are logged and left out; the comparison runs with the rest.
    """

    def __init__(self, shared: SharedData) -> None:
        self.shared: SharedData = shared
        self._trans_instance: dict[str, TransInterface] = {}
        self._orchestrators: dict[str, TranslationOrchestrator] = {}
        logger.debug("Registered translation engines: %s", list(TransInterface.registered))

    async def initialize(self) -> None:
        """Instantiate and initialise every configured backend."""
        logger.info("TransManager initialization started")
        config = self.shared.config

        for _name in config.TRANSLATION.ENGINE:
            _cls: type[TransInterface] | None = TransInterface.registered.get(_name)
            if _cls is None:
                logger.critical("Translation class not found: '%s'", _name)
                continue
            _instance: TransInterface = _cls()
            try:
                await _instance.initialize(self.shared)
            except TranslateExceptionError as err:
                logger.error("Translation engine '%s' is unavailable: %s", _name, err)
                continue
            self._trans_instance[_name] = _instance
            self._orchestrators[_name] = TranslationOrchestrator(
                _instance.engine_name,
                max_tokens=config.LOCAL_MODEL.MAX_TOKENS,
                temperature=config.LOCAL_MODEL.TEMPERATURE,
            )
            logger.info("Translation engine initialized: '%s'", _name)
            logger.debug("Engine attributes: %s", _instance.engine_attributes)

    def fetch_engine_names(self) -> list[str]:
        """Names of the initialised backends, in configuration order."""
        return list(self._trans_instance)

    def backend(self, name: str) -> TransInterface:
        """Return an initialised backend by engine name.

        Raises:
            TranslateExceptionError: If the backend is not configured or failed to initialise.
        """
        try:
            return self._trans_instance[name]
        except KeyError as err:
            msg: str = f"Translation engine not available: '{name}'"
            raise TranslateExceptionError(msg) from err

    def orchestrator(self, name: str) -> TranslationOrchestrator:
        self.backend(name)
        return self._orchestrators[name]

    def cancel_all(self) -> None:
        for orchestrator in self._orchestrators.values():
            orchestrator.cancel()

    async def shutdown_engines(self) -> None:
        """Cancel running translations and close all backends."""
        logger.info("Class '%s' termination process started.", self.__class__.__name__)
        self.cancel_all()
        for _inst in self._trans_instance.values():
            await _inst.close()
        self._trans_instance.clear()
        self._orchestrators.clear()
        logger.info("Class '%s' termination process completed.", self.__class__.__name__)
