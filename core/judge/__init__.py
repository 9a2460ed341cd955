"""LLM-as-a-judge evaluation of competing translations."""

from core.judge.client import RETRYABLE_PATTERNS, JudgeClient
from core.judge.errors import (
    JudgeError,
    JudgeInvalidResponseError,
    JudgeMaxRetriesExceededError,
    JudgeMissingCredentialError,
    JudgeNetworkError,
    JudgeParsingError,
    JudgeTimeoutError,
)
from core.judge.parser import normalize_winner, parse_judgement

__all__: list[str] = [
    "RETRYABLE_PATTERNS",
    "JudgeClient",
    "JudgeError",
    "JudgeInvalidResponseError",
    "JudgeMaxRetriesExceededError",
    "JudgeMissingCredentialError",
    "JudgeNetworkError",
    "JudgeParsingError",
    "JudgeTimeoutError",
    "normalize_winner",
    "parse_judgement",
]
