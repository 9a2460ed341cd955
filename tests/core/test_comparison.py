"""Unit tests for core.comparison module."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, cast

import pytest

from core.comparison import ComparisonRunner
from core.judge.errors import JudgeTimeoutError
from core.trans.interface import EngineAttributes, SingleShotBackend, TranslateExceptionError
from core.trans.orchestrator import RecordingObserver, TranslationOrchestrator
from models.judge_models import NO_TRANSLATION_PLACEHOLDER, Judgement, Winner
from models.translation_models import TargetLanguage, TranslationRequest

if TYPE_CHECKING:
    from core.judge.client import JudgeClient
    from core.trans.interface import TransInterface
    from core.trans.manager import TransManager


class CannedBackend(SingleShotBackend):
    def __init__(self, name: str, slot: Winner, text: str = "", *, error: Exception | None = None) -> None:
        super().__init__()
        self.engine_attributes = EngineAttributes(name=name, judge_slot=slot)
        self.text: str = text
        self.error: Exception | None = error

    @property
    def is_available(self) -> bool:
        return True

    async def initialize(self, shared) -> None:
        _ = shared

    async def translate(self, text: str, source_locale: str, target_locale: str) -> str:
        _ = text, source_locale, target_locale
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.text

    async def close(self) -> None:
        pass


class FakeTransManager:
    def __init__(self, backends: list[CannedBackend]) -> None:
        self.backends: dict[str, CannedBackend] = {backend.engine_name: backend for backend in backends}
        self.orchestrators: dict[str, TranslationOrchestrator] = {
            name: TranslationOrchestrator(name) for name in self.backends
        }
        self.cancelled: bool = False

    def fetch_engine_names(self) -> list[str]:
        return list(self.backends)

    def backend(self, name: str) -> TransInterface:
        return self.backends[name]

    def orchestrator(self, name: str) -> TranslationOrchestrator:
        return self.orchestrators[name]

    def cancel_all(self) -> None:
        self.cancelled = True


class FakeJudge:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.error: Exception | None = error
        self.calls: list[tuple[Any, ...]] = []

    async def evaluate(self, *args: Any) -> Judgement:
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        return Judgement(
            overall_score=8,
            afm_score=8,
            mlx_score=7,
            apple_translation_score=0,
            winner=Winner.AFM,
            explanation="A is accurate.",
            key_differences="C is missing.",
        )


def _runner(backends: list[CannedBackend], judge: FakeJudge, **kwargs: Any) -> ComparisonRunner:
    return ComparisonRunner(
        cast("TransManager", FakeTransManager(backends)),
        cast("JudgeClient", judge),
        **kwargs,
    )


@pytest.fixture
def request_fr() -> TranslationRequest:
    return TranslationRequest("Your card is locked.", TargetLanguage.FRENCH)


@pytest.mark.asyncio
async def test_run_collects_every_backend_and_judges(request_fr: TranslationRequest) -> None:
    judge = FakeJudge()
    backends: list[CannedBackend] = [
        CannedBackend("AFM", Winner.AFM, "Votre carte est bloquée."),
        CannedBackend("MLX", Winner.MLX, "Votre carte est verrouillée."),
        CannedBackend("Apple", Winner.APPLE_TRANSLATION, error=TranslateExceptionError("offline")),
    ]

    result = await _runner(backends, judge).run(request_fr)

    assert result.text(Winner.AFM) == "Votre carte est bloquée."
    assert result.text(Winner.APPLE_TRANSLATION) == ""
    assert result.outcomes[Winner.APPLE_TRANSLATION].error_message == "offline"
    assert result.backend_names[Winner.MLX] == "MLX"
    assert result.non_empty_count == 2
    assert result.judgement is not None
    assert result.judgement.winner is Winner.AFM
    assert result.judge_error is None
    assert judge.calls == [
        (
            "Your card is locked.",
            "Votre carte est bloquée.",
            "Votre carte est verrouillée.",
            NO_TRANSLATION_PLACEHOLDER,
            TargetLanguage.FRENCH,
        )
    ]


@pytest.mark.asyncio
async def test_judge_is_skipped_with_fewer_than_two_translations(request_fr: TranslationRequest) -> None:
    judge = FakeJudge()
    backends: list[CannedBackend] = [
        CannedBackend("AFM", Winner.AFM, "Votre carte est bloquée."),
        CannedBackend("MLX", Winner.MLX, "   "),
    ]

    result = await _runner(backends, judge).run(request_fr)

    assert result.can_judge is False
    assert result.judgement is None
    assert result.judge_error == "At least two translations are required for evaluation"
    assert judge.calls == []


@pytest.mark.asyncio
async def test_judge_failure_is_recorded(request_fr: TranslationRequest) -> None:
    judge = FakeJudge(error=JudgeTimeoutError())
    backends: list[CannedBackend] = [
        CannedBackend("AFM", Winner.AFM, "a"),
        CannedBackend("MLX", Winner.MLX, "b"),
    ]

    result = await _runner(backends, judge).run(request_fr)

    assert result.judgement is None
    assert result.judge_error == "Request timed out. Please try again."


@pytest.mark.asyncio
async def test_evaluate_false_skips_judge(request_fr: TranslationRequest) -> None:
    judge = FakeJudge()
    backends: list[CannedBackend] = [
        CannedBackend("AFM", Winner.AFM, "a"),
        CannedBackend("MLX", Winner.MLX, "b"),
    ]

    result = await _runner(backends, judge).run(request_fr, evaluate=False)

    assert result.judgement is None
    assert result.judge_error is None
    assert judge.calls == []


@pytest.mark.asyncio
async def test_observer_factory_is_used_per_backend(request_fr: TranslationRequest) -> None:
    created: list[str] = []

    def factory(backend: TransInterface) -> RecordingObserver:
        created.append(backend.engine_name)
        return RecordingObserver()

    backends: list[CannedBackend] = [CannedBackend("AFM", Winner.AFM, "a"), CannedBackend("MLX", Winner.MLX, "b")]
    result = await _runner(backends, FakeJudge(), observer_factory=factory).run(request_fr, evaluate=False)

    assert created == ["AFM", "MLX"]
    assert result.outcomes[Winner.MLX].kinds == ["started", "completed"]


@pytest.mark.asyncio
async def test_run_without_backends_raises(request_fr: TranslationRequest) -> None:
    with pytest.raises(TranslateExceptionError, match="No translation engines"):
        await _runner([], FakeJudge()).run(request_fr)


def test_cancel_cancels_all_orchestrators() -> None:
    manager = FakeTransManager([])
    runner = ComparisonRunner(cast("TransManager", manager), cast("JudgeClient", FakeJudge()))

    runner.cancel()

    assert manager.cancelled is True
