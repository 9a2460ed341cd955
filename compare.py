"""Compare translations from several backends and let an LLM judge pick the best one.

The source text is translated concurrently by every engine listed in ``TRANSLATION.ENGINE`` of
``transjudge.ini``. The judge is consulted once at least two translations are available.
Local models can be listed, downloaded and deleted from the same command.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Final, NoReturn

from config.loader import Config, ConfigLoader, ConfigLoaderError
from core.comparison import ComparisonResult, ComparisonRunner
from core.shared_data import SharedData
from core.trans.interface import TranslateExceptionError
from core.trans.orchestrator import RecordingObserver
from core.version import VERSION
from models.judge_models import Winner
from models.translation_models import TargetLanguage, TranslationRequest
from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    from core.models_cache.manager import ModelLifecycleManager
    from core.trans.interface import TransInterface
    from models.translation_models import TranslationResult

CFG_FILE: Final[str] = "transjudge.ini"
RULE: Final[str] = "=" * 60

logger: logging.Logger = LoggerUtils.get_logger(__name__)


def check_python_version() -> None:
    """Check if Python version is 3.13 or later.

    Raises:
        RuntimeError: If Python version is below 3.13.
    """
    if sys.version_info < (3, 13):
        msg = "Python 3.13 or later is required"
        raise RuntimeError(msg)


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        print(f"\n{message}\n", file=sys.stderr)
        self.print_help(sys.stderr)
        raise SystemExit(2)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = _ArgumentParser(
        description="Compare machine translations and score them with an LLM judge",
        epilog='Example: python compare.py --lang fr --text "Your transfer was successful."',
    )
    parser.add_argument("--text", dest="text", metavar="TEXT", help="English source text to translate")
    parser.add_argument(
        "--lang",
        dest="lang",
        metavar="CODE",
        choices=[language.value for language in TargetLanguage],
        help="Override the target language (ru, zh, vi, fr)",
    )
    parser.add_argument("--model", dest="model", metavar="MODEL_ID", help="Local model to use for this run")
    parser.add_argument("--no-judge", dest="no_judge", action="store_true", help="Skip the judge evaluation")
    parser.add_argument("--list-models", dest="list_models", action="store_true", help="List local models")
    parser.add_argument("--download", dest="download", metavar="MODEL_ID", help="Download a local model")
    parser.add_argument("--delete", dest="delete", metavar="MODEL_ID", help="Delete a downloaded local model")
    parser.add_argument("--debug", dest="debug", action="store_true", help="Verbose logging to the console")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> Config:
    """Load configuration file and apply CLI overrides.

    Raises:
        ConfigLoaderError: If configuration file cannot be loaded.
    """
    script_name: str = Path(sys.argv[0]).stem
    config: Config = ConfigLoader(config_filename=CFG_FILE, script_name=script_name, **vars(args)).config
    config.GENERAL.VERSION = VERSION
    return config


def setup_logging(config: Config) -> None:
    log_file: str = ""
    if config.GENERAL.LOG_FILE:
        log_file = str(FileUtils.resolve_path(config.GENERAL.LOG_FILE))
    logger_utils = LoggerUtils(log_file, console_level=logging.DEBUG if config.GENERAL.DEBUG else logging.WARNING)
    logger_utils.set_level("DEBUG" if config.GENERAL.DEBUG else config.GENERAL.LOG_LEVEL)


def print_retry(attempt: int, max_attempts: int, err: Exception) -> None:
    print(f"  Judge request failed ({err}), retrying, attempt {attempt}/{max_attempts}...")


class ConsoleObserver(RecordingObserver):
    """Prints one line per lifecycle milestone of a backend."""

    def __init__(self, backend: TransInterface) -> None:
        super().__init__()
        self.label: str = backend.engine_name

    def on_started(self) -> None:
        super().on_started()
        print(f"  [{self.label}] translating...")

    def on_time_to_first_token(self, seconds: float) -> None:
        super().on_time_to_first_token(seconds)
        print(f"  [{self.label}] first token after {seconds:.2f}s")

    def on_completed(self, result: TranslationResult) -> None:
        super().on_completed(result)
        print(f"  [{self.label}] done in {result.total_time or 0.0:.2f}s")

    def on_cancelled(self, partial_text: str) -> None:
        super().on_cancelled(partial_text)
        print(f"  [{self.label}] cancelled")

    def on_failed(self, error: Exception) -> None:
        super().on_failed(error)
        print(f"  [{self.label}] failed: {error}", file=sys.stderr)


def print_models(models: ModelLifecycleManager) -> None:
    print("\nLocal models:")
    for descriptor in models.list_models():
        marker: str = "*" if models.selected is not None and models.selected.id == descriptor.id else " "
        state: str = "downloaded" if descriptor.downloaded else "not downloaded"
        print(f" {marker} {descriptor.id:<14} {descriptor.display_name:<28} {descriptor.size_estimate:>8}  {state}")


def print_report(result: ComparisonResult) -> None:
    print("\n" + RULE)
    print(f"Source ({result.request.target_language.full_display_name}): {result.request.source_text}")
    print(RULE)
    for slot, outcome in result.outcomes.items():
        print(f"\n{result.backend_names[slot]}:")
        if outcome.error_message:
            print(f"  Error: {outcome.error_message}")
            continue
        print(f"  {outcome.text}")
        details: list[str] = []
        if outcome.time_to_first_token is not None:
            details.append(f"first token {outcome.time_to_first_token:.2f}s")
        if outcome.result is not None and outcome.result.total_time is not None:
            details.append(f"total {outcome.result.total_time:.2f}s")
        if outcome.stats_text:
            details.append(outcome.stats_text)
        if details:
            print(f"  ({', '.join(details)})")

    print("\n" + RULE)
    judgement = result.judgement
    if judgement is None:
        print(f"Judge: {result.judge_error or 'not consulted'}")
        return
    print(f"Winner: {judgement.winner.display_name}   Overall: {judgement.overall_score}/10")
    scores: dict[Winner, int] = {
        Winner.AFM: judgement.afm_score,
        Winner.MLX: judgement.mlx_score,
        Winner.APPLE_TRANSLATION: judgement.apple_translation_score,
    }
    for slot, score in scores.items():
        print(f"  {slot.display_name:<26} {score:>2}/10 ({judgement.score_band(score)})")
    print(f"\nExplanation: {judgement.explanation}")
    print(f"Key differences: {judgement.key_differences}")


async def manage_models(args: argparse.Namespace, models: ModelLifecycleManager) -> None:
    if args.delete:
        await models.delete(args.delete)
        print(models.error_message or f"Deleted model '{args.delete}'")
    if args.download:
        print(f"Downloading model '{args.download}'...")
        await models.download(args.download)
        print(models.error_message or f"Downloaded model '{args.download}'")
    if args.model:
        await models.select(args.model)
    if args.list_models:
        print_models(models)


async def main(argv: list[str] | None = None) -> int:
    check_python_version()
    args: argparse.Namespace = parse_arguments(argv)
    try:
        config: Config = load_config(args)
    except ConfigLoaderError as err:
        print("\nError: Failed to load configuration file.", file=sys.stderr)
        print(f"Details: {err}", file=sys.stderr)
        return 1

    setup_logging(config)
    logger.info("TransJudge %s started", VERSION)

    shared = SharedData(config)
    await shared.async_init(on_retry=print_retry)
    try:
        models: ModelLifecycleManager = shared.model_manager
        await models.refresh_download_state()
        await manage_models(args, models)
        if not args.text:
            return 0

        target: TargetLanguage = TargetLanguage.from_code(config.TRANSLATION.DEFAULT_LANGUAGE)
        request = TranslationRequest(args.text, target)
        await shared.trans_manager.initialize()
        runner = ComparisonRunner(shared.trans_manager, shared.judge, observer_factory=ConsoleObserver)
        print(f"\nTranslating into {target.full_display_name}...")
        try:
            result: ComparisonResult = await runner.run(request, evaluate=not args.no_judge)
        except TranslateExceptionError as err:
            print(f"\nError: {err}", file=sys.stderr)
            return 1
        print_report(result)
        return 0
    finally:
        await shared.close()


def run() -> None:
    """Console entry point."""
    exit_code: int = 1
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\nCancelled by user.", file=sys.stderr)
    except (OSError, RuntimeError, ValueError) as err:
        print(f"\nFatal error: {err}", file=sys.stderr)
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
