"""Streaming generation over a loaded local model.

``LocalModelSession`` drives one generation pass: it prepares the chat prompt on the model handle,
relays the handle's events, and records time-to-first-token, total time and throughput.
A session is single use; create a new one for every translation.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from models.generation_models import Chunk, GenerateParameters, Stats, ToolCall
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import AsyncIterator

    from models.generation_models import ChatPrompt, GenerationEvent

__all__: list[str] = ["GenerationCancelledError", "GenerationError", "LocalModelSession", "ModelHandle"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class GenerationError(Exception):
    """Local generation failed."""


class GenerationCancelledError(Exception):
    """Local generation stopped because cancellation was requested. Not a failure."""


class ModelHandle(ABC):
    """Loaded local model exposed by the model-execution runtime.

    Attributes:
        model_id (str): Identifier of the loaded model variant.
    """

    def __init__(self, model_id: str) -> None:
        self.model_id: str = model_id

    @abstractmethod
    async def prepare(self, prompt: ChatPrompt) -> Any:
        """Tokenise the chat prompt and return a runtime-specific input context."""
        raise NotImplementedError

    @abstractmethod
    def generate(self, context: Any, parameters: GenerateParameters) -> AsyncIterator[GenerationEvent]:
        """Start generation and return the lazy sequence of generation events."""
        raise NotImplementedError


class LocalModelSession:
    """One streaming generation pass over a model handle.

    Args:
        handle (ModelHandle): Loaded model to generate with.
        parameters (GenerateParameters | None): Sampling parameters. Defaults to 512 tokens at temperature 0.3.
        cancel_event (asyncio.Event | None): Cooperative cancellation flag, checked before every event.
    """

    def __init__(
        self,
        handle: ModelHandle,
        *,
        parameters: GenerateParameters | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        self.handle: ModelHandle = handle
        self.parameters: GenerateParameters = parameters or GenerateParameters()
        self._cancel_event: asyncio.Event = cancel_event or asyncio.Event()
        self._consumed: bool = False
        self._start_time: float | None = None
        self.time_to_first_token: float | None = None
        self.total_time: float | None = None
        self.tokens_per_second: float | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        self._cancel_event.set()

    @property
    def elapsed(self) -> float:
        """Seconds since generation started, 0.0 before it started."""
        if self._start_time is None:
            return 0.0
        return time.perf_counter() - self._start_time

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            msg = "Generation cancelled"
            raise GenerationCancelledError(msg)

    async def generate(self, prompt: ChatPrompt) -> AsyncIterator[GenerationEvent]:
        """Yield the generation events for ``prompt``.

        ``ToolCall`` events are dropped. Timing attributes are updated before the corresponding
        event is yielded, so a consumer can read ``time_to_first_token`` upon the first ``Chunk``.

        Raises:
            GenerationError: If the session was already consumed or the runtime fails.
            GenerationCancelledError: If cancellation was requested.
        """
        if self._consumed:
            msg = "A generation session can only be consumed once"
            raise GenerationError(msg)
        self._consumed = True
        self._start_time = time.perf_counter()
        logger.debug(
            "Generation start: model='%s', max_tokens=%d, temperature=%s, seed=%d",
            self.handle.model_id,
            self.parameters.max_tokens,
            self.parameters.temperature,
            self.parameters.seed,
        )

        self._check_cancelled()
        stream: AsyncIterator[GenerationEvent] | None = None
        try:
            context: Any = await self.handle.prepare(prompt)
            stream = self.handle.generate(context, self.parameters)
            async for event in stream:
                self._check_cancelled()
                match event:
                    case Chunk():
                        if self.time_to_first_token is None:
                            self.time_to_first_token = self.elapsed
                            logger.debug("Time to first token: %.3fs", self.time_to_first_token)
                    case Stats(tokens_per_second=tps):
                        self.tokens_per_second = tps
                    case ToolCall():
                        logger.debug("Ignoring tool call event")
                        continue
                yield event
        except (GenerationError, GenerationCancelledError):
            raise
        except Exception as err:
            msg = f"Local generation failed: {err}"
            raise GenerationError(msg) from err
        finally:
            if stream is not None and hasattr(stream, "aclose"):
                await stream.aclose()

        self.total_time = self.elapsed
        logger.debug("Generation finished in %.3fs", self.total_time)
