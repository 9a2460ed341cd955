"""LLM-as-a-judge client.

``JudgeClient`` asks a remote OpenAI-compatible chat model to score three candidate translations.
Each attempt is raced against a timeout; transient failures are retried with exponential backoff
(2 s, 4 s, ...) up to the configured number of attempts.
"""

from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING, Any, Final

from core.judge.errors import (
    JudgeError,
    JudgeInvalidResponseError,
    JudgeMaxRetriesExceededError,
    JudgeMissingCredentialError,
    JudgeNetworkError,
    JudgeParsingError,
    JudgeTimeoutError,
)
from core.judge.parser import parse_judgement
from core.judge.prompts import build_system_prompt, build_user_prompt
from handlers.async_comm import AsyncCommError
from models.judge_models import ChatCompletionRequest, ChatCompletionResponse, ChatMessage
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

    from handlers.async_comm import AsyncHttp
    from models.config_models import Config
    from models.judge_models import Judgement
    from models.translation_models import TargetLanguage

__all__: list[str] = ["RETRYABLE_PATTERNS", "JudgeClient", "RetryCallback"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

type RetryCallback = Callable[[int, int, Exception], None]

RETRYABLE_PATTERNS: Final[tuple[str, ...]] = (
    "timeout",
    "timed out",
    "network",
    "connection",
    "internet",
    "offline",
    "unreachable",
    "reset",
    "502",
    "503",
    "504",
)
_RETRYABLE_STATUSES: Final[frozenset[int]] = frozenset({502, 503, 504})


class JudgeClient:
    """Evaluates three translations with a remote judge model.

    The credential is read from the environment variable named by ``JUDGE.API_KEY_ENV`` at call time.

    Args:
        config (Config): Application configuration; the ``JUDGE`` section is used.
        http (AsyncHttp): Shared HTTP client.
        on_retry (RetryCallback | None): Called before each retry with
            (next attempt number, maximum attempts, error of the failed attempt).

    Attributes:
        is_evaluating (bool): Whether ``evaluate`` is running.
        current_retry_attempt (int): Attempt in progress, 0 when idle.
        error_message (str | None): Message of the last failed evaluation.
        last_judgement (Judgement | None): Result of the last successful evaluation.
    """

    def __init__(self, config: Config, http: AsyncHttp, *, on_retry: RetryCallback | None = None) -> None:
        self.api_url: str = config.JUDGE.API_URL
        self.model: str = config.JUDGE.MODEL
        self.api_key_env: str = config.JUDGE.API_KEY_ENV
        self.temperature: float = config.JUDGE.TEMPERATURE
        self.timeout: float = config.JUDGE.TIMEOUT
        self.max_attempts: int = config.JUDGE.MAX_ATTEMPTS
        self.base_retry_delay: float = config.JUDGE.BASE_RETRY_DELAY
        self.http: AsyncHttp = http
        self.on_retry: RetryCallback | None = on_retry

        self.is_evaluating: bool = False
        self.current_retry_attempt: int = 0
        self.error_message: str | None = None
        self.last_judgement: Judgement | None = None

    @property
    def api_key(self) -> str:
        return os.getenv(self.api_key_env, "").strip()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def retry_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt ``attempt`` (1-based) before the next one."""
        return self.base_retry_delay * 2 ** (attempt - 1)

    @staticmethod
    def is_retryable(err: BaseException) -> bool:
        """Timeouts, network errors and errors whose message names a transient condition are retryable."""
        if isinstance(err, (JudgeTimeoutError, JudgeNetworkError)):
            return True
        if isinstance(err, JudgeParsingError):
            return False
        description: str = str(err).lower()
        return any(pattern in description for pattern in RETRYABLE_PATTERNS)

    def clear(self) -> None:
        self.last_judgement = None
        self.error_message = None

    async def evaluate(
        self,
        source_text: str,
        afm_translation: str,
        mlx_translation: str,
        apple_translation: str,
        target_language: TargetLanguage,
    ) -> Judgement:
        """Score three translations of ``source_text``.

        Callers replace empty candidates with ``NO_TRANSLATION_PLACEHOLDER`` beforehand.

        Returns:
            Judgement: The parsed verdict.

        Raises:
            JudgeMissingCredentialError: If no credential is configured. No request is sent.
            JudgeError: When the last attempt failed or a failure is not retryable. Unexpected exceptions
                are wrapped into ``JudgeNetworkError``.
        """
        if not self.is_configured:
            missing = JudgeMissingCredentialError(self.api_key_env)
            self.error_message = str(missing)
            raise missing

        self.is_evaluating = True
        self.error_message = None
        self.current_retry_attempt = 0

        request = ChatCompletionRequest(
            model=self.model,
            messages=[
                ChatMessage(role="system", content=build_system_prompt()),
                ChatMessage(
                    role="user",
                    content=build_user_prompt(
                        source_text=source_text,
                        afm_translation=afm_translation,
                        mlx_translation=mlx_translation,
                        apple_translation=apple_translation,
                        target_language=target_language,
                    ),
                ),
            ],
            temperature=self.temperature,
        )

        last_error: Exception | None = None
        try:
            for attempt in range(1, self.max_attempts + 1):
                self.current_retry_attempt = attempt
                try:
                    judgement: Judgement = await self._attempt(request)
                except Exception as err:  # noqa: BLE001
                    last_error = err
                    if self.is_retryable(err) and attempt < self.max_attempts:
                        delay: float = self.retry_delay(attempt)
                        logger.warning(
                            "Judge attempt %d/%d failed (%s), retrying in %.1fs", attempt, self.max_attempts, err, delay
                        )
                        if self.on_retry is not None:
                            self.on_retry(attempt + 1, self.max_attempts, err)
                        await asyncio.sleep(delay)
                        continue
                    break
                else:
                    self.last_judgement = judgement
                    logger.info("Judge verdict: winner=%s overall=%d", judgement.winner, judgement.overall_score)
                    return judgement

            error: JudgeError = self._as_judge_error(last_error)
            self.error_message = str(error)
            logger.error("Judge evaluation failed: %s", error)
            if error is last_error:
                raise error
            raise error from last_error
        finally:
            self.is_evaluating = False
            self.current_retry_attempt = 0

    @staticmethod
    def _as_judge_error(err: Exception | None) -> JudgeError:
        if isinstance(err, JudgeError):
            return err
        if err is None:
            return JudgeMaxRetriesExceededError()
        return JudgeNetworkError(str(err) or type(err).__name__)

    async def _attempt(self, request: ChatCompletionRequest) -> Judgement:
        """One request raced against the per-attempt timeout; the request is cancelled if the timeout wins."""
        try:
            return await asyncio.wait_for(self._send(request), timeout=self.timeout)
        except TimeoutError as err:
            raise JudgeTimeoutError from err

    async def _send(self, request: ChatCompletionRequest) -> Judgement:
        headers: dict[str, str] = {"Authorization": f"Bearer {self.api_key}"}
        logger.debug("Sending judge request: model='%s', url='%s'", request.model, self.api_url)
        try:
            # The per-attempt timeout is enforced by the caller.
            data: Any = await self.http.post(url=self.api_url, data=request.to_dict(), headers=headers, total_timeout=0)
        except AsyncCommError as err:
            if err.status is not None and err.status not in _RETRYABLE_STATUSES:
                msg = f"Judge API rejected the request: {err}"
                raise JudgeError(msg) from err
            raise JudgeNetworkError(str(err)) from err

        if not isinstance(data, dict):
            raise JudgeInvalidResponseError
        try:
            response: ChatCompletionResponse = ChatCompletionResponse.from_dict(data)
        except (KeyError, TypeError, ValueError) as err:
            raise JudgeInvalidResponseError from err

        content: str | None = response.first_content
        if not content:
            raise JudgeInvalidResponseError
        return parse_judgement(content)
