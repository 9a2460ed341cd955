"""Translation backends, prompts and per-backend orchestration.

This package provides translation through pluggable backends (a local streaming model, a served
foundation model and DeepL) driven by ``TranslationOrchestrator`` with observer callbacks.
"""

from core.trans.interface import (
    BackendUnavailableError,
    EngineAttributes,
    NotSupportedLanguagesError,
    SingleShotBackend,
    StreamingBackend,
    TransInterface,
    TranslateExceptionError,
    TranslationQuotaExceededError,
    TranslationRateLimitError,
)
from core.trans.manager import TransManager
from core.trans.orchestrator import (
    CANCELLED_MARKER,
    OrchestratorState,
    RecordingObserver,
    TranslationObserver,
    TranslationOrchestrator,
)
from core.trans.prompt import PromptBuilder

__all__: list[str] = [
    "CANCELLED_MARKER",
    "BackendUnavailableError",
    "EngineAttributes",
    "NotSupportedLanguagesError",
    "OrchestratorState",
    "PromptBuilder",
    "RecordingObserver",
    "SingleShotBackend",
    "StreamingBackend",
    "TransInterface",
    "TransManager",
    "TranslateExceptionError",
    "TranslationObserver",
    "TranslationOrchestrator",
    "TranslationQuotaExceededError",
    "TranslationRateLimitError",
]
