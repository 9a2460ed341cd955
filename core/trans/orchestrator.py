"""Per-backend translation orchestration.

A ``TranslationOrchestrator`` turns one ``TranslationRequest`` into lifecycle events for an observer and a
final ``TranslationResult``. Each instance runs at most one translation at a time: starting a new one cancels
the previous one and waits for it to finish. Every ``on_started`` is followed by exactly one of
``on_completed``, ``on_failed`` or ``on_cancelled``.
"""

from __future__ import annotations

import asyncio
import time
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from core.generation.session import GenerationCancelledError
from core.trans.interface import SingleShotBackend, StreamingBackend, TranslateExceptionError
from core.trans.prompt import PromptBuilder
from models.generation_models import Chunk, GenerateParameters, Stats
from models.translation_models import SOURCE_LOCALE, TranslationResult
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

    from core.trans.interface import TransInterface
    from models.translation_models import TranslationRequest

__all__: list[str] = [
    "CANCELLED_MARKER",
    "OrchestratorState",
    "RecordingObserver",
    "TranslationObserver",
    "TranslationOrchestrator",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

CANCELLED_MARKER: str = "[Cancelled]"


class OrchestratorState(StrEnum):
    IDLE = "idle"
    STARTING = "starting"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TranslationObserver:
    """Receives the lifecycle events of one orchestrator. All methods default to no-ops."""

    def on_started(self) -> None:
        pass

    def on_time_to_first_token(self, seconds: float) -> None:
        pass

    def on_chunk(self, delta: str) -> None:
        pass

    def on_stats(self, tokens_per_second: float) -> None:
        pass

    def on_completed(self, result: TranslationResult) -> None:
        pass

    def on_cancelled(self, partial_text: str) -> None:
        pass

    def on_failed(self, error: Exception) -> None:
        pass


class RecordingObserver(TranslationObserver):
    """Observer that records every event and keeps display-ready state.

    Attributes:
        events (list[tuple[str, Any]]): ``(kind, payload)`` per event, in arrival order.
        text (str): Text shown to the user; annotated with "[Cancelled]" on cancellation.
        stats_text (str | None): Throughput for display, e.g. "12.0 tokens/s".
        time_to_first_token (float | None): Seconds until the first chunk.
        error_message (str | None): Message of the failure, if any.
        result (TranslationResult | None): Final result of a completed run.
        is_translating (bool): True between ``on_started`` and the terminal event.
    """

    TERMINAL_KINDS: tuple[str, ...] = ("completed", "failed", "cancelled")

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []
        self.text: str = ""
        self.stats_text: str | None = None
        self.time_to_first_token: float | None = None
        self.error_message: str | None = None
        self.result: TranslationResult | None = None
        self.is_translating: bool = False

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]

    @property
    def terminal_count(self) -> int:
        return sum(1 for kind in self.kinds if kind in self.TERMINAL_KINDS)

    def on_started(self) -> None:
        self.events.append(("started", None))
        self.text = ""
        self.stats_text = None
        self.time_to_first_token = None
        self.error_message = None
        self.result = None
        self.is_translating = True

    def on_time_to_first_token(self, seconds: float) -> None:
        self.events.append(("time_to_first_token", seconds))
        self.time_to_first_token = seconds

    def on_chunk(self, delta: str) -> None:
        self.events.append(("chunk", delta))
        self.text += delta

    def on_stats(self, tokens_per_second: float) -> None:
        self.events.append(("stats", tokens_per_second))
        self.stats_text = f"{tokens_per_second:.1f} tokens/s"

    def on_completed(self, result: TranslationResult) -> None:
        self.events.append(("completed", result))
        self.text = result.text
        self.result = result
        self.is_translating = False

    def on_cancelled(self, partial_text: str) -> None:
        self.events.append(("cancelled", partial_text))
        self.text = f"{partial_text}\n\n{CANCELLED_MARKER}" if partial_text else CANCELLED_MARKER
        self.is_translating = False

    def on_failed(self, error: Exception) -> None:
        self.events.append(("failed", error))
        self.error_message = str(error)
        self.is_translating = False


class TranslationOrchestrator:
    """Runs translations for one backend slot, one at a time.

    Args:
        name (str): Label used in log messages.
        max_tokens (int): Token limit for streaming backends.
        temperature (float): Sampling temperature for streaming backends.

    Attributes:
        state (OrchestratorState): Current lifecycle state.
        last_outcome (OrchestratorState | None): Terminal state of the most recent run.
        result (TranslationResult | None): Result of the most recent successful run.
        text (str): Raw text accumulated by the current or most recent run.
        tokens_per_second (float | None): Last throughput reported by the current or most recent run.
    """

    def __init__(self, name: str = "", *, max_tokens: int = 512, temperature: float = 0.3) -> None:
        self.name: str = name
        self.max_tokens: int = max_tokens
        self.temperature: float = temperature
        self.state: OrchestratorState = OrchestratorState.IDLE
        self.last_outcome: OrchestratorState | None = None
        self.result: TranslationResult | None = None
        self.text: str = ""
        self.tokens_per_second: float | None = None
        self._task: asyncio.Task[TranslationResult | None] | None = None
        self._cancel_event: asyncio.Event | None = None
        self._start_lock: asyncio.Lock = asyncio.Lock()

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    async def translate(
        self,
        request: TranslationRequest,
        backend: TransInterface,
        observer: TranslationObserver,
    ) -> TranslationResult | None:
        """Translate ``request`` with ``backend``, reporting to ``observer``.

        A translation still running on this orchestrator is cancelled and awaited first. Overlapping calls
        take turns, so each one replaces the run started just before it.

        Returns:
            TranslationResult | None: The result, or None if the run failed or was cancelled.
        """
        async with self._start_lock:
            await self._cancel_active()

            cancel_event = asyncio.Event()
            self._cancel_event = cancel_event
            task: asyncio.Task[TranslationResult | None] = asyncio.create_task(
                self._run(request, backend, observer, cancel_event)
            )
            self._task = task
        try:
            return await task
        except asyncio.CancelledError:
            current: asyncio.Task[Any] | None = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return None

    def cancel(self) -> None:
        """Stop the active translation, if any. Safe to call repeatedly or when idle."""
        if self._cancel_event is not None:
            self._cancel_event.set()
        if self._task is not None and not self._task.done():
            logger.debug("[%s] Cancelling active translation", self.name)
            self._task.cancel()

    async def _cancel_active(self) -> None:
        previous: asyncio.Task[TranslationResult | None] | None = self._task
        if previous is None or previous.done():
            return
        self.cancel()
        await asyncio.wait({previous})

    async def _run(
        self,
        request: TranslationRequest,
        backend: TransInterface,
        observer: TranslationObserver,
        cancel_event: asyncio.Event,
    ) -> TranslationResult | None:
        started: float = time.perf_counter()
        self.state = OrchestratorState.STARTING
        self.text = ""
        self.tokens_per_second = None
        self._emit(observer.on_started)

        try:
            if isinstance(backend, StreamingBackend):
                result: TranslationResult = await self._stream(request, backend, observer, cancel_event, started)
            elif isinstance(backend, SingleShotBackend):
                result = await self._single_shot(request, backend, started)
            else:
                msg = f"Unsupported backend type: {type(backend).__name__}"
                raise TranslateExceptionError(msg)
        except asyncio.CancelledError:
            self._finish_cancelled(observer)
            raise
        except GenerationCancelledError:
            self._finish_cancelled(observer)
            return None
        except Exception as err:  # noqa: BLE001
            logger.warning("[%s] Translation failed: %s", self.name, err)
            self._finish(OrchestratorState.FAILED)
            self._emit(observer.on_failed, err)
            return None

        self.result = result
        self._finish(OrchestratorState.COMPLETED)
        logger.info("[%s] Translation completed in %.2fs", self.name, result.total_time or 0.0)
        self._emit(observer.on_completed, result)
        return result

    async def _stream(
        self,
        request: TranslationRequest,
        backend: StreamingBackend,
        observer: TranslationObserver,
        cancel_event: asyncio.Event,
        started: float,
    ) -> TranslationResult:
        builder = PromptBuilder(request.source_text, request.target_language)
        parameters = GenerateParameters(max_tokens=self.max_tokens, temperature=self.temperature)
        session = await backend.open_session(parameters=parameters, cancel_event=cancel_event)
        self.state = OrchestratorState.STREAMING

        time_to_first_token: float | None = None
        async for event in session.generate(builder.chat_prompt()):
            match event:
                case Chunk(text=delta):
                    if time_to_first_token is None:
                        time_to_first_token = time.perf_counter() - started
                        self._emit(observer.on_time_to_first_token, time_to_first_token)
                    self.text += delta
                    self._emit(observer.on_chunk, delta)
                case Stats(tokens_per_second=tokens_per_second):
                    self.tokens_per_second = tokens_per_second
                    self._emit(observer.on_stats, tokens_per_second)

        return TranslationResult(
            text=builder.clean_output(self.text),
            time_to_first_token=time_to_first_token,
            total_time=time.perf_counter() - started,
            tokens_per_second=self.tokens_per_second,
        )

    async def _single_shot(
        self,
        request: TranslationRequest,
        backend: SingleShotBackend,
        started: float,
    ) -> TranslationResult:
        self.text = await backend.translate(
            request.source_text, SOURCE_LOCALE, request.target_language.translation_locale
        )
        return TranslationResult(text=self.text, total_time=time.perf_counter() - started)

    def _finish_cancelled(self, observer: TranslationObserver) -> None:
        logger.info("[%s] Translation cancelled", self.name)
        self._finish(OrchestratorState.CANCELLED)
        self._emit(observer.on_cancelled, self.text)

    def _finish(self, outcome: OrchestratorState) -> None:
        self.last_outcome = outcome
        self.state = OrchestratorState.IDLE

    def _emit(self, callback: Callable[..., None], *args: Any) -> None:
        """Invoke an observer method; its exceptions are logged and never interrupt the lifecycle."""
        try:
            callback(*args)
        except Exception:
            logger.exception("[%s] Observer %s raised", self.name, getattr(callback, "__name__", callback))
