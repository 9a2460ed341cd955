"""Models for local-model generation.

Defines the events yielded by a streaming generation pass, the chat prompt handed to a
loaded model, and the sampling parameters.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from dataclasses_json import DataClassJsonMixin, Undefined, dataclass_json

__all__: list[str] = [
    "ChatCompletionChunk",
    "Chunk",
    "ChatPrompt",
    "GenerateParameters",
    "GenerationEvent",
    "Stats",
    "ToolCall",
]


@dataclass(frozen=True)
class Chunk:
    """Incremental piece of generated text."""

    text: str


@dataclass(frozen=True)
class Stats:
    """Throughput report from the generator."""

    tokens_per_second: float


@dataclass(frozen=True)
class ToolCall:
    """Tool invocation emitted by the model. Translation ignores these."""

    payload: Any = None


type GenerationEvent = Chunk | Stats | ToolCall


@dataclass(frozen=True)
class ChatPrompt:
    """System and user turns for a chat-style local model."""

    system: str
    user: str

    def to_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def _time_seed() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class GenerateParameters:
    """Sampling parameters for one generation.

    Attributes:
        max_tokens (int): Upper bound of generated tokens.
        temperature (float): Sampling temperature. Kept low for translation.
        seed (int): Random seed; defaults to the current time in milliseconds.
    """

    max_tokens: int = 512
    temperature: float = 0.3
    seed: int = field(default_factory=_time_seed)


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class _Delta(DataClassJsonMixin):
    content: str | None = None


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class _StreamChoice(DataClassJsonMixin):
    delta: _Delta = field(default_factory=_Delta)
    finish_reason: str | None = None


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class _Usage(DataClassJsonMixin):
    completion_tokens: int | None = None


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class ChatCompletionChunk(DataClassJsonMixin):
    """One server-sent event of a streaming OpenAI-compatible chat completion."""

    choices: list[_StreamChoice] = field(default_factory=list)
    usage: _Usage | None = None

    @property
    def delta_text(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""

    @property
    def completion_tokens(self) -> int | None:
        return self.usage.completion_tokens if self.usage else None
