"""Data models for TransJudge.

This package contains dataclass definitions for configuration, translation requests and results,
local-model generation events, model descriptors, and judge verdicts.
"""

from __future__ import annotations

from models.config_models import Config
from models.generation_models import ChatPrompt, Chunk, GenerateParameters, GenerationEvent, Stats, ToolCall
from models.judge_models import NO_TRANSLATION_PLACEHOLDER, Judgement, Winner
from models.model_models import DEFAULT_MODEL_CATALOG, ModelDescriptor
from models.translation_models import TargetLanguage, TranslationRequest, TranslationResult

__all__: list[str] = [
    "DEFAULT_MODEL_CATALOG",
    "NO_TRANSLATION_PLACEHOLDER",
    "ChatPrompt",
    "Chunk",
    "Config",
    "GenerateParameters",
    "GenerationEvent",
    "Judgement",
    "ModelDescriptor",
    "Stats",
    "TargetLanguage",
    "ToolCall",
    "TranslationRequest",
    "TranslationResult",
    "Winner",
]
