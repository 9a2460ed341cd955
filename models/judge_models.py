"""Data models for the translation judge.

Holds the verdict returned by the judge and the OpenAI-compatible chat-completion
payloads exchanged with the judge API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from dataclasses_json import DataClassJsonMixin, Undefined, dataclass_json

__all__: list[str] = [
    "NO_TRANSLATION_PLACEHOLDER",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    "ChatMessage",
    "Judgement",
    "Winner",
]

NO_TRANSLATION_PLACEHOLDER: str = "(No translation provided)"


class Winner(StrEnum):
    """Backend declared best by the judge."""

    AFM = "AFM"
    MLX = "MLX"
    APPLE_TRANSLATION = "APPLE_TRANSLATION"
    TIE = "TIE"

    @property
    def display_name(self) -> str:
        return {
            Winner.AFM: "Apple Foundation Models",
            Winner.MLX: "MLX/Gemma",
            Winner.APPLE_TRANSLATION: "Apple Translation",
            Winner.TIE: "Tie",
        }[self]


@dataclass_json
@dataclass(frozen=True)
class Judgement(DataClassJsonMixin):
    """Verdict of one successful evaluation.

    Attributes:
        overall_score (int): Overall quality score (0-10).
        afm_score (int): Score of the foundation-model translation.
        mlx_score (int): Score of the local-model translation.
        apple_translation_score (int): Score of the built-in translation service.
        winner (Winner): Normalised winner label.
        explanation (str): Short explanation from the judge.
        key_differences (str): Differences the judge noted between the candidates.
        raw_response (str): Unprocessed message content, kept for debugging.
    """

    overall_score: int
    afm_score: int
    mlx_score: int
    apple_translation_score: int
    winner: Winner
    explanation: str
    key_differences: str
    raw_response: str = field(repr=False, default="")

    def score_band(self, score: int) -> str:
        """Rubric band name of a score ("excellent", "good", "fair", "poor", "very poor")."""
        if score >= 9:
            return "excellent"
        if score >= 7:
            return "good"
        if score >= 5:
            return "fair"
        if score >= 3:
            return "poor"
        return "very poor"


@dataclass_json
@dataclass
class ChatMessage(DataClassJsonMixin):
    role: str
    content: str


@dataclass_json
@dataclass
class ChatCompletionRequest(DataClassJsonMixin):
    model: str
    messages: list[ChatMessage]
    temperature: float


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class _ResponseMessage(DataClassJsonMixin):
    content: str | None = None
    role: str = "assistant"


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class _Choice(DataClassJsonMixin):
    message: _ResponseMessage = field(default_factory=_ResponseMessage)
    index: int = 0


@dataclass_json(undefined=Undefined.EXCLUDE)
@dataclass
class ChatCompletionResponse(DataClassJsonMixin):
    """Subset of an OpenAI-compatible chat-completion response; unknown keys are ignored."""

    choices: list[_Choice] = field(default_factory=list)
    model: str = ""

    @property
    def first_content(self) -> str | None:
        """Content of the first choice, or None if the response carries no content."""
        if not self.choices:
            return None
        return self.choices[0].message.content
