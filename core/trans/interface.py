"""Abstract translation backends and related exceptions.

Two kinds of backend exist: ``StreamingBackend`` opens a ``LocalModelSession`` that yields text incrementally,
``SingleShotBackend`` returns the whole translation from one call. Concrete backends register themselves
under their engine name when their class is defined.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import asyncio
    import logging

    from core.generation.session import LocalModelSession
    from core.shared_data import SharedData
    from models.generation_models import GenerateParameters
    from models.judge_models import Winner

__all__: list[str] = [
    "BackendUnavailableError",
    "EngineAttributes",
    "NotSupportedLanguagesError",
    "SingleShotBackend",
    "StreamingBackend",
    "TransInterface",
    "TranslateExceptionError",
    "TranslationQuotaExceededError",
    "TranslationRateLimitError",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


@dataclass
class EngineAttributes:
    """Engine-specific identity and behaviour flags.

    Attributes:
        name (str): Display name of the backend.
        judge_slot (Winner): Candidate label under which the judge scores this backend's output.
        streaming (bool): Whether the backend yields text incrementally.
    """

    name: str
    judge_slot: Winner
    streaming: bool = False


class TranslateExceptionError(Exception):
    """An error occurred during the translation process."""


class NotSupportedLanguagesError(TranslateExceptionError):
    """An unsupported language code was specified."""


class TranslationQuotaExceededError(TranslateExceptionError):
    """The translatable character quota has been exceeded."""


class TranslationRateLimitError(TranslateExceptionError):
    """The translation request was rate-limited by the API."""


class BackendUnavailableError(TranslateExceptionError):
    """The backend cannot translate right now (no model loaded, no credential, service offline)."""


class TransInterface(ABC):
    """Abstract base class for translation backends.

    Attributes:
        registered (ClassVar[dict[str, type[TransInterface]]]): Backend classes keyed by engine name.
            Classes whose ``fetch_engine_name()`` is empty are not registered.
    """

    registered: ClassVar[dict[str, type[TransInterface]]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        name: str = cls.fetch_engine_name()
        if not isinstance(name, str) or name == "":
            return

        if name in cls.registered:
            msg: str = f"A translation backend with the name '{name}' is already registered."
            raise ValueError(msg)
        cls.registered[name] = cls

    def __init__(self) -> None:
        self._engine_attributes: EngineAttributes | None = None

    @property
    def engine_attributes(self) -> EngineAttributes:
        if self._engine_attributes is None:
            msg = "Engine attributes have not been set."
            raise RuntimeError(msg)
        return self._engine_attributes

    @engine_attributes.setter
    def engine_attributes(self, attributes: EngineAttributes) -> None:
        if self._engine_attributes is not None:
            msg = "Engine attributes can only be set once during initialization."
            raise RuntimeError(msg)
        self._engine_attributes = attributes

    @property
    def engine_name(self) -> str:
        return self.engine_attributes.name

    @property
    def judge_slot(self) -> Winner:
        return self.engine_attributes.judge_slot

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the backend can translate now."""
        raise NotImplementedError

    @staticmethod
    def fetch_engine_name() -> str:
        """Distinguished name of the backend, used as the registry key and in ``TRANSLATION.ENGINE``.

        Called from ``__init_subclass__``; concrete backends must override it.
        """
        return ""

    @abstractmethod
    async def initialize(self, shared: SharedData) -> None:
        """Prepare the backend from the configuration and shared resources.

        Raises:
            TranslateExceptionError: If the backend cannot be set up.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        raise NotImplementedError

    def get_authentication_key(self) -> str:
        """Read the credential from the "<ENGINE NAME>_API_OAUTH" environment variable (e.g. DEEPL_API_OAUTH)."""
        return os.getenv(f"{self.fetch_engine_name().upper()}_API_OAUTH", "")


class SingleShotBackend(TransInterface):
    """Backend that returns a whole translation from one call."""

    @abstractmethod
    async def translate(self, text: str, source_locale: str, target_locale: str) -> str:
        """Translate ``text``.

        Args:
            text (str): Source text.
            source_locale (str): Source locale, e.g. "en".
            target_locale (str): Target locale, e.g. "fr" or "zh-Hans".

        Returns:
            str: The translation.

        Raises:
            NotSupportedLanguagesError: If a locale is not supported.
            BackendUnavailableError: If the backend is not ready.
            TranslateExceptionError: If translation fails.
        """
        raise NotImplementedError


class StreamingBackend(TransInterface):
    """Backend that generates the translation incrementally with a local model."""

    @abstractmethod
    async def open_session(
        self,
        *,
        parameters: GenerateParameters,
        cancel_event: asyncio.Event,
    ) -> LocalModelSession:
        """Return a fresh generation session over the currently loaded model.

        Raises:
            BackendUnavailableError: If no model is loaded.
        """
        raise NotImplementedError
