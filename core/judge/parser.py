"""Verdict extraction from the judge model's free-form reply."""

from __future__ import annotations

import json
import re
from typing import Any

from core.judge.errors import JudgeParsingError
from models.judge_models import Judgement, Winner

__all__: list[str] = ["JudgeParsingError", "normalize_winner", "parse_judgement", "strip_code_fence"]

DEFAULT_EXPLANATION: str = "No explanation provided"
DEFAULT_KEY_DIFFERENCES: str = "No differences noted"

# Checked in order; "APPLE_TRANSLATION" also contains "APPLE", so it must precede the AFM synonyms.
_WINNER_RULES: list[tuple[Winner, tuple[str, ...], re.Pattern[str] | None]] = [
    (
        Winner.APPLE_TRANSLATION,
        ("APPLE_TRANSLATION", "APPLE TRANSLATION", "TRANSLATION FRAMEWORK"),
        re.compile(r"^C$|\bTRANSLATION C\b"),
    ),
    (
        Winner.AFM,
        ("AFM", "APPLE FOUNDATION", "FOUNDATION MODEL"),
        re.compile(r"^A$|\bTRANSLATION A\b"),
    ),
    (
        Winner.MLX,
        ("MLX", "GEMMA", "HUGGING"),
        re.compile(r"^B$|\bTRANSLATION B\b"),
    ),
    (
        Winner.TIE,
        ("TIE", "EQUAL", "DRAW", "BOTH", "ALL"),
        None,
    ),
]


def normalize_winner(raw_winner: str) -> Winner:
    """Map a free-form winner label onto a ``Winner``.

    Synonyms are matched as substrings of the upper-cased label; the legacy labels "A", "B" and "C"
    match on their own or as "TRANSLATION <letter>". Anything unrecognised is a tie.

    Examples:
        >>> normalize_winner("Translation C")
        <Winner.APPLE_TRANSLATION: 'APPLE_TRANSLATION'>
        >>> normalize_winner("gpt said translation A wins")
        <Winner.AFM: 'AFM'>
        >>> normalize_winner("random garbage")
        <Winner.TIE: 'TIE'>
    """
    label: str = raw_winner.strip().upper()
    for winner, synonyms, legacy in _WINNER_RULES:
        if any(synonym in label for synonym in synonyms) or (legacy is not None and legacy.search(label)):
            return winner
    return Winner.TIE


def strip_code_fence(content: str) -> str:
    """Remove a leading ```json or ``` fence and a trailing ``` fence."""
    text: str = content.strip()
    if text.startswith("```json"):
        text = text[len("```json") :]
    elif text.startswith("```"):
        text = text[len("```") :]
    text = text.removesuffix("```")
    return text.strip()


def _score(data: dict[str, Any], key: str) -> int:
    value: Any = data.get(key)
    # bool is an int subclass but never a valid score.
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return value


def _text(data: dict[str, Any], key: str, default: str) -> str:
    value: Any = data.get(key)
    return value if isinstance(value, str) else default


def parse_judgement(content: str) -> Judgement:
    """Parse the judge reply into a ``Judgement``, filling defaults for missing fields.

    Args:
        content (str): Message content returned by the judge.

    Returns:
        Judgement: The verdict. ``raw_response`` holds ``content`` unchanged.

    Raises:
        JudgeParsingError: If the content is not a JSON object.
    """
    payload: str = strip_code_fence(content)
    try:
        data: Any = json.loads(payload)
    except json.JSONDecodeError as err:
        msg = f"JSON parsing failed: {err}"
        raise JudgeParsingError(msg) from err
    if not isinstance(data, dict):
        msg = "Response is not a valid JSON object"
        raise JudgeParsingError(msg)

    afm_score: int = _score(data, "afm_score")
    mlx_score: int = _score(data, "mlx_score")
    apple_translation_score: int = _score(data, "apple_translation_score")
    raw_overall: Any = data.get("overall_score")
    overall_score: int = (
        raw_overall
        if isinstance(raw_overall, int) and not isinstance(raw_overall, bool)
        else (afm_score + mlx_score + apple_translation_score) // 3
    )

    return Judgement(
        overall_score=overall_score,
        afm_score=afm_score,
        mlx_score=mlx_score,
        apple_translation_score=apple_translation_score,
        winner=normalize_winner(_text(data, "winner", Winner.TIE.value)),
        explanation=_text(data, "explanation", DEFAULT_EXPLANATION),
        key_differences=_text(data, "key_differences", DEFAULT_KEY_DIFFERENCES),
        raw_response=content,
    )
