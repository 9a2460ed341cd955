"""Unit tests for core.judge.parser module."""

from __future__ import annotations

import json

import pytest

from core.judge.parser import (
    DEFAULT_EXPLANATION,
    DEFAULT_KEY_DIFFERENCES,
    JudgeParsingError,
    normalize_winner,
    parse_judgement,
    strip_code_fence,
)
from models.judge_models import Winner


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("AFM", Winner.AFM),
        ("Apple Foundation Models", Winner.AFM),
        ("foundation model", Winner.AFM),
        ("Translation A", Winner.AFM),
        ("a", Winner.AFM),
        ("mlx", Winner.MLX),
        ("Gemma", Winner.MLX),
        ("Hugging Face model", Winner.MLX),
        ("B", Winner.MLX),
        ("APPLE_TRANSLATION", Winner.APPLE_TRANSLATION),
        ("Apple Translation", Winner.APPLE_TRANSLATION),
        ("Translation framework", Winner.APPLE_TRANSLATION),
        ("Translation C", Winner.APPLE_TRANSLATION),
        (" c ", Winner.APPLE_TRANSLATION),
        ("TIE", Winner.TIE),
        ("equal", Winner.TIE),
        ("All of them", Winner.TIE),
        ("random garbage", Winner.TIE),
        ("", Winner.TIE),
    ],
)
def test_normalize_winner(raw: str, expected: Winner) -> None:
    assert normalize_winner(raw) is expected


def test_legacy_letters_match_whole_words_only() -> None:
    assert normalize_winner("CAB") is Winner.TIE
    assert normalize_winner("Translation Bravo") is Winner.TIE


@pytest.mark.parametrize(
    "content",
    [
        '{"winner": "AFM"}',
        '```json\n{"winner": "AFM"}\n```',
        '```\n{"winner": "AFM"}\n```',
        '  {"winner": "AFM"}  ',
    ],
)
def test_strip_code_fence(content: str) -> None:
    assert strip_code_fence(content) == '{"winner": "AFM"}'


def test_parse_full_judgement() -> None:
    body: dict[str, object] = {
        "afm_score": 8,
        "mlx_score": 7,
        "apple_translation_score": 9,
        "overall_score": 8,
        "winner": "APPLE_TRANSLATION",
        "explanation": "C is the most natural.",
        "key_differences": "A uses a literal term.",
    }
    content: str = f"```json\n{json.dumps(body)}\n```"

    judgement = parse_judgement(content)

    assert (judgement.afm_score, judgement.mlx_score, judgement.apple_translation_score) == (8, 7, 9)
    assert judgement.overall_score == 8
    assert judgement.winner is Winner.APPLE_TRANSLATION
    assert judgement.explanation == "C is the most natural."
    assert judgement.key_differences == "A uses a literal term."
    assert judgement.raw_response == content


def test_parse_fills_defaults() -> None:
    judgement = parse_judgement('{"afm_score": 9, "mlx_score": 6, "apple_translation_score": "ten", "winner": 3}')

    assert judgement.apple_translation_score == 0
    assert judgement.overall_score == (9 + 6 + 0) // 3
    assert judgement.winner is Winner.TIE
    assert judgement.explanation == DEFAULT_EXPLANATION
    assert judgement.key_differences == DEFAULT_KEY_DIFFERENCES


def test_parse_rejects_boolean_scores() -> None:
    judgement = parse_judgement('{"afm_score": true, "overall_score": false}')

    assert judgement.afm_score == 0
    assert judgement.overall_score == 0


@pytest.mark.parametrize("content", ["not json at all", "[1, 2, 3]", '"just a string"'])
def test_parse_invalid_content(content: str) -> None:
    with pytest.raises(JudgeParsingError, match="Failed to parse judge response"):
        parse_judgement(content)


def test_score_band() -> None:
    judgement = parse_judgement('{"overall_score": 7}')

    assert [judgement.score_band(score) for score in (10, 7, 5, 3, 0)] == [
        "excellent",
        "good",
        "fair",
        "poor",
        "very poor",
    ]
