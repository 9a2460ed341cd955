"""Side-by-side comparison of the configured backends, scored by the judge.

All backends translate the same request concurrently. The judge is only consulted once at least two of them
produced a non-empty translation; missing candidates are sent as a placeholder.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.judge.errors import JudgeError
from core.trans.interface import TranslateExceptionError
from core.trans.orchestrator import RecordingObserver
from models.judge_models import NO_TRANSLATION_PLACEHOLDER, Winner
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

    from core.judge.client import JudgeClient
    from core.trans.interface import TransInterface
    from core.trans.manager import TransManager
    from models.judge_models import Judgement
    from models.translation_models import TranslationRequest

__all__: list[str] = ["MIN_CANDIDATES_FOR_JUDGE", "ComparisonResult", "ComparisonRunner"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

MIN_CANDIDATES_FOR_JUDGE: int = 2

type ObserverFactory = Callable[[TransInterface], RecordingObserver]


@dataclass
class ComparisonResult:
    """Outcome of one comparison.

    Attributes:
        request (TranslationRequest): The translated request.
        outcomes (dict[Winner, RecordingObserver]): Per judge slot, the observer that followed that backend.
        backend_names (dict[Winner, str]): Display name of the backend in each slot.
        judgement (Judgement | None): The judge's verdict, if it was consulted and succeeded.
        judge_error (str | None): Why no verdict is available, if the judge was skipped or failed.
    """

    request: TranslationRequest
    outcomes: dict[Winner, RecordingObserver] = field(default_factory=dict)
    backend_names: dict[Winner, str] = field(default_factory=dict)
    judgement: Judgement | None = None
    judge_error: str | None = None

    def text(self, slot: Winner) -> str:
        """Final translation of ``slot``; empty when the backend is absent, failed or was cancelled."""
        outcome: RecordingObserver | None = self.outcomes.get(slot)
        if outcome is None or outcome.result is None:
            return ""
        return outcome.result.text

    def candidate(self, slot: Winner) -> str:
        return self.text(slot).strip() or NO_TRANSLATION_PLACEHOLDER

    @property
    def non_empty_count(self) -> int:
        return sum(1 for slot in self.outcomes if self.text(slot).strip())

    @property
    def can_judge(self) -> bool:
        return self.non_empty_count >= MIN_CANDIDATES_FOR_JUDGE


class ComparisonRunner:
    """Runs every initialised backend on one request and asks the judge for a verdict.

    Args:
        trans_manager (TransManager): Provides the backends and their orchestrators.
        judge (JudgeClient): Scores the candidates.
        observer_factory (ObserverFactory | None): Builds the observer for each backend;
            defaults to a plain ``RecordingObserver``.
    """

    def __init__(
        self,
        trans_manager: TransManager,
        judge: JudgeClient,
        *,
        observer_factory: ObserverFactory | None = None,
    ) -> None:
        self.trans_manager: TransManager = trans_manager
        self.judge: JudgeClient = judge
        self.observer_factory: ObserverFactory = observer_factory or (lambda _backend: RecordingObserver())

    async def run(self, request: TranslationRequest, *, evaluate: bool = True) -> ComparisonResult:
        """Translate ``request`` with all backends and, if ``evaluate``, judge the results.

        Raises:
            TranslateExceptionError: If no backend is available.
        """
        names: list[str] = self.trans_manager.fetch_engine_names()
        if not names:
            msg = "No translation engines are available"
            raise TranslateExceptionError(msg)

        comparison = ComparisonResult(request=request)
        runs = []
        for name in names:
            backend: TransInterface = self.trans_manager.backend(name)
            observer: RecordingObserver = self.observer_factory(backend)
            comparison.outcomes[backend.judge_slot] = observer
            comparison.backend_names[backend.judge_slot] = backend.engine_name
            runs.append(self.trans_manager.orchestrator(name).translate(request, backend, observer))

        logger.info("Comparing %d backends for '%s'", len(runs), request.target_language.language_name)
        await asyncio.gather(*runs)

        if evaluate:
            await self._evaluate(comparison)
        return comparison

    async def _evaluate(self, comparison: ComparisonResult) -> None:
        if not comparison.can_judge:
            comparison.judge_error = "At least two translations are required for evaluation"
            logger.warning(comparison.judge_error)
            return

        request: TranslationRequest = comparison.request
        try:
            comparison.judgement = await self.judge.evaluate(
                request.source_text,
                comparison.candidate(Winner.AFM),
                comparison.candidate(Winner.MLX),
                comparison.candidate(Winner.APPLE_TRANSLATION),
                request.target_language,
            )
        except JudgeError as err:
            comparison.judge_error = str(err)

    def cancel(self) -> None:
        self.trans_manager.cancel_all()
