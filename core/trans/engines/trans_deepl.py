from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, ClassVar

from deepl import DeepLClient, Language, TextResult, Usage
from deepl.exceptions import (
    AuthorizationException,
    ConnectionException,
    DeepLException,
    QuotaExceededException,
    TooManyRequestsException,
)

from core.trans.interface import (
    BackendUnavailableError,
    EngineAttributes,
    NotSupportedLanguagesError,
    SingleShotBackend,
    TranslateExceptionError,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
)
from models.judge_models import Winner
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.shared_data import SharedData


__all__: list[str] = ["DeeplTranslation"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class DeeplTranslation(SingleShotBackend):
    """Machine translation through the DeepL API; fills the built-in translation slot of the comparison."""

    _source_codes: ClassVar[dict[str, str]] = {}  # Locale (lower case) to DeepL source code
    _target_codes: ClassVar[dict[str, str]] = {}  # Locale (lower case) to DeepL target code

    def __init__(self) -> None:
        super().__init__()
        self.__inst: DeepLClient | None = None
        self.__usage: Usage | None = None
        self.__available: bool = False
        self._generate_langcode_mappings()

    def _generate_langcode_mappings(self) -> None:
        """Populate the locale tables from the Language constants of the DeepL library.

        Both the full locale ("zh-hans") and its base code ("zh") are keyed. Source codes are always the
        base code, since DeepL does not accept regional variants as source languages.
        """
        for code in self._get_language_constants(Language).values():
            base_code: str = code.split("-")[0].lower()
            DeeplTranslation._source_codes[base_code] = base_code.upper()
            DeeplTranslation._target_codes.setdefault(base_code, code.upper())
            DeeplTranslation._target_codes[code.lower()] = code.upper()

        logger.debug("Language code mapping generated for DeepL.")

    @staticmethod
    def _get_language_constants(namespace: type) -> dict[str, str]:
        """Uppercase string constants of ``namespace``, which DeepL uses for language codes."""
        return {name: value for name, value in vars(namespace).items() if isinstance(value, str) and name.isupper()}

    @staticmethod
    def _lookup(table: dict[str, str], locale: str) -> str:
        key: str = locale.lower()
        if key in table:
            return table[key]
        return table[key.split("-")[0]]

    @property
    def _inst(self) -> DeepLClient:
        if self.__inst is None:
            msg = "The DeepL instance is not initialised"
            raise BackendUnavailableError(msg)
        return self.__inst

    @_inst.setter
    def _inst(self, inst: DeepLClient | None) -> None:
        if inst is not None:
            self.__inst = inst
        else:
            self.__inst = None
            self.__available = False
            self.__usage = None
        logger.debug("'%s': 'set instance'", self.__class__.__name__)

    @property
    def limit_reached(self) -> bool:
        return self.__usage is not None and bool(self.__usage.character.limit_reached)

    @property
    def is_available(self) -> bool:
        return self.__available

    @staticmethod
    def fetch_engine_name() -> str:
        return "deepl"

    async def initialize(self, shared: SharedData) -> None:
        """Create the DeepL client from the DEEPL_API_OAUTH environment variable.

        Raises:
            BackendUnavailableError: If no authentication key is set.
            TranslateExceptionError: If authorization fails or the usage query fails.
        """
        logger.debug("'%s' Initialization start", self.__class__.__name__)
        _ = shared  # Indicate unused.

        self.engine_attributes = EngineAttributes(name="DeepL", judge_slot=Winner.APPLE_TRANSLATION)
        auth_key: str = self.get_authentication_key()
        if not auth_key:
            msg = "DeepL authentication key is not set (DEEPL_API_OAUTH)"
            raise BackendUnavailableError(msg)
        try:
            # Authentication happens on the first API call, so the usage query below validates the key.
            self._inst = DeepLClient(auth_key)
        except (AttributeError, ValueError) as err:
            logger.critical(err)
            msg = "An error occurred while creating the DeepL client instance"
            raise TranslateExceptionError(msg) from err

        try:
            # Availability follows the quota reported by the API, not the mere presence of a client.
            await asyncio.to_thread(self._get_usage)
        except TranslateExceptionError:
            self._inst = None
            raise

    async def translate(self, text: str, source_locale: str, target_locale: str) -> str:
        logger.debug("'src_lang': '%s', 'tgt_lang': '%s'", source_locale, target_locale)
        try:
            _src_lang: str = self._lookup(DeeplTranslation._source_codes, source_locale)
            _tgt_lang: str = self._lookup(DeeplTranslation._target_codes, target_locale)
        except KeyError:
            msg: str = (
                f"Languages not supported by DeepL. Source language: '{source_locale}'. "
                f"Target language: '{target_locale}'."
            )
            raise NotSupportedLanguagesError(msg) from None

        try:
            results: TextResult | list[TextResult] = await asyncio.to_thread(
                self._inst.translate_text,
                text,
                source_lang=_src_lang,
                target_lang=_tgt_lang,
            )
        except QuotaExceededException as err:
            self.__available = False
            raise TranslationQuotaExceededError(err) from None
        except AuthorizationException:
            msg = "Authorisation failed. Please check your authentication key"
            raise TranslateExceptionError(msg) from None
        except TooManyRequestsException as err:
            msg = "DeepL rate limit reached"
            raise TranslationRateLimitError(msg) from err
        except ConnectionException:
            msg = "An error occurred when connecting to the DeepL server"
            raise TranslateExceptionError(msg) from None
        except (DeepLException, ValueError, TypeError):
            msg = "An anomaly occurred during the translation process at DeepL"
            raise TranslateExceptionError(msg) from None

        logger.info("translation completed (%s > %s)", _src_lang, _tgt_lang)
        return self._extract_text(results)

    @staticmethod
    def _extract_text(results: TextResult | list[TextResult]) -> str:
        if isinstance(results, TextResult):
            return results.text
        if isinstance(results, list) and results:
            # A single input string never yields a list, but the client's signature allows it.
            return results[0].text
        msg = "An anomaly occurred during the translation process at DeepL"
        raise TranslateExceptionError(msg)

    def _get_usage(self) -> None:
        """Fetch the character usage and derive availability from it.

        Raises:
            TranslateExceptionError: If the usage statistics cannot be fetched.
        """
        try:
            self.__usage = self._inst.get_usage()
            self.__available = not self.limit_reached
        except TooManyRequestsException as err:
            msg = "DeepL rate limit reached"
            raise TranslationRateLimitError(msg) from err
        except ConnectionException:
            msg = "An error occurred when connecting to the DeepL server"
            raise TranslateExceptionError(msg) from None
        except AuthorizationException:
            msg = "Authorisation failed. Please check your authentication key"
            raise TranslateExceptionError(msg) from None
        except DeepLException:
            msg = "An anomaly occurred while fetching DeepL usage"
            raise TranslateExceptionError(msg) from None

    async def close(self) -> None:
        self._inst = None
        logger.debug("'%s' process termination", self.__class__.__name__)
