from __future__ import annotations

from typing import TYPE_CHECKING, Any

from core.trans.interface import (
    BackendUnavailableError,
    EngineAttributes,
    NotSupportedLanguagesError,
    SingleShotBackend,
    TranslateExceptionError,
    TranslationRateLimitError,
)
from core.trans.prompt import PromptBuilder
from handlers.async_comm import AsyncCommError, AsyncCommTimeoutError
from models.judge_models import ChatCompletionRequest, ChatCompletionResponse, ChatMessage, Winner
from models.translation_models import TargetLanguage
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.shared_data import SharedData
    from handlers.async_comm import AsyncHttp


__all__: list[str] = ["FoundationModelBackend"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

_TOO_MANY_REQUESTS: int = 429


class FoundationModelBackend(SingleShotBackend):
    """Single-turn translation with a general-purpose model served over an OpenAI-compatible API.

    The whole prompt (instructions, rules and text) is sent as one user message and the reply is
    cleaned of boilerplate prefixes.
    """

    def __init__(self) -> None:
        super().__init__()
        self._http: AsyncHttp | None = None
        self.server_url: str = ""
        self.model: str = ""
        self.timeout: float = 60.0
        self.temperature: float = 0.3

    @property
    def is_available(self) -> bool:
        return self._http is not None and bool(self.server_url)

    @staticmethod
    def fetch_engine_name() -> str:
        return "foundation_model"

    async def initialize(self, shared: SharedData) -> None:
        logger.debug("'%s' Initialization start", self.__class__.__name__)
        self.engine_attributes = EngineAttributes(name="Apple Foundation Models", judge_slot=Winner.AFM)
        self.server_url = shared.config.FOUNDATION_MODEL.SERVER
        self.model = shared.config.FOUNDATION_MODEL.MODEL
        self.timeout = shared.config.FOUNDATION_MODEL.TIMEOUT
        self.temperature = shared.config.LOCAL_MODEL.TEMPERATURE
        if not self.server_url:
            msg = "FOUNDATION_MODEL.SERVER is not configured"
            raise TranslateExceptionError(msg)
        self._http = shared.http

    async def translate(self, text: str, source_locale: str, target_locale: str) -> str:
        logger.debug("'src_lang': '%s', 'tgt_lang': '%s'", source_locale, target_locale)
        if self._http is None:
            msg = "The foundation model backend is not initialised"
            raise BackendUnavailableError(msg)
        try:
            target: TargetLanguage = TargetLanguage.from_code(target_locale.split("-")[0])
        except ValueError as err:
            raise NotSupportedLanguagesError(str(err)) from None

        builder = PromptBuilder(text, target)
        request = ChatCompletionRequest(
            model=self.model,
            messages=[ChatMessage(role="user", content=builder.full_prompt())],
            temperature=self.temperature,
        )
        try:
            data: Any = await self._http.post(url=self.server_url, data=request.to_dict(), total_timeout=self.timeout)
        except AsyncCommTimeoutError as err:
            msg = f"The foundation model did not answer within {self.timeout:.0f}s"
            raise TranslateExceptionError(msg) from err
        except AsyncCommError as err:
            if err.status == _TOO_MANY_REQUESTS:
                msg = "Foundation model rate limit reached"
                raise TranslationRateLimitError(msg) from err
            msg = f"Foundation model request failed: {err}"
            raise BackendUnavailableError(msg) from err

        content: str | None = None
        if isinstance(data, dict):
            try:
                content = ChatCompletionResponse.from_dict(data).first_content
            except (KeyError, TypeError, ValueError):
                content = None
        if content is None:
            msg = "The foundation model returned no content"
            raise TranslateExceptionError(msg)

        logger.info("translation completed (%s > %s)", source_locale, target_locale)
        return builder.clean_output(content)

    async def close(self) -> None:
        self._http = None
        logger.debug("'%s' process termination", self.__class__.__name__)
