"""Core translation, generation, model lifecycle and judge services for TransJudge.

This package contains the per-backend translation orchestrator, the streaming local-model session,
the model lifecycle manager with its handle registry, the LLM judge client, and the shared service container.
"""

from core.comparison import ComparisonResult, ComparisonRunner
from core.shared_data import SharedData
from core.version import VERSION

__all__: list[str] = [
    "VERSION",
    "ComparisonResult",
    "ComparisonRunner",
    "SharedData",
]
