"""Model handle backed by a local OpenAI-compatible inference server.

The server (for example ``mlx_lm.server``) hosts the downloaded weights; this handle sends the chat
prompt with ``stream=true`` and converts the server-sent events into generation events.
"""

from __future__ import annotations

import json
import time
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from core.generation.session import GenerationError, ModelHandle
from models.generation_models import ChatCompletionChunk, Chunk, Stats
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import AsyncIterator
    from pathlib import Path

    from handlers.async_comm import AsyncHttp
    from models.generation_models import ChatPrompt, GenerateParameters, GenerationEvent

__all__: list[str] = ["ServerModelHandle"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

_DATA_PREFIX: str = "data:"
_DONE_MARKER: str = "[DONE]"


class ServerModelHandle(ModelHandle):
    """Streams completions for one model from an inference server.

    Args:
        model_id (str): Catalog identifier of the model.
        model_name (str): Name the server knows the model by (local path or repository name).
        server_url (str): Chat-completions endpoint.
        http (AsyncHttp): Shared HTTP client.
    """

    def __init__(self, model_id: str, *, model_name: str | Path, server_url: str, http: AsyncHttp) -> None:
        super().__init__(model_id)
        self.model_name: str = str(model_name)
        self.server_url: str = server_url
        self.http: AsyncHttp = http

    async def prepare(self, prompt: ChatPrompt) -> dict[str, Any]:
        return {"model": self.model_name, "messages": prompt.to_messages()}

    async def generate(self, context: dict[str, Any], parameters: GenerateParameters) -> AsyncIterator[GenerationEvent]:
        """Yield ``Chunk`` events as deltas arrive and one final ``Stats`` event.

        Throughput uses the server's reported completion tokens when present, otherwise one token per delta.
        """
        payload: dict[str, Any] = {
            **context,
            "max_tokens": parameters.max_tokens,
            "temperature": parameters.temperature,
            "seed": parameters.seed,
            "stream": True,
        }
        started: float = time.perf_counter()
        tokens: int = 0

        async with aclosing(self.http.stream_lines(url=self.server_url, data=payload)) as lines:
            async for line in lines:
                if not line.startswith(_DATA_PREFIX):
                    continue
                body: str = line.removeprefix(_DATA_PREFIX).strip()
                if body == _DONE_MARKER:
                    break
                try:
                    chunk: ChatCompletionChunk = ChatCompletionChunk.from_dict(json.loads(body))
                except (json.JSONDecodeError, KeyError, TypeError) as err:
                    msg = f"Malformed stream event from '{self.server_url}': {body[:80]}"
                    raise GenerationError(msg) from err

                if chunk.delta_text:
                    tokens += 1
                    yield Chunk(chunk.delta_text)
                if chunk.completion_tokens:
                    tokens = chunk.completion_tokens

        elapsed: float = time.perf_counter() - started
        if tokens and elapsed > 0:
            yield Stats(tokens_per_second=tokens / elapsed)
