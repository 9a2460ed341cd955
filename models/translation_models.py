"""Models for translation requests and results.

Defines the supported target languages, the immutable per-call request, and the result
produced by one successful orchestration run.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

__all__: list[str] = ["SOURCE_LOCALE", "TargetLanguage", "TranslationRequest", "TranslationResult"]

SOURCE_LOCALE: str = "en"


class TargetLanguage(StrEnum):
    """Supported target languages, valued by their ISO 639-1 code."""

    RUSSIAN = "ru"
    CHINESE = "zh"
    VIETNAMESE = "vi"
    FRENCH = "fr"

    @property
    def language_name(self) -> str:
        """English name used inside prompts (e.g. "French")."""
        return _LANGUAGE_NAMES[self]

    @property
    def native_name(self) -> str:
        return _NATIVE_NAMES[self]

    @property
    def display_name(self) -> str:
        """Short label with flag, e.g. "🇫🇷 FR"."""
        return f"{_FLAGS[self]} {self.value.upper()}"

    @property
    def full_display_name(self) -> str:
        return f"{_FLAGS[self]} {self.language_name}"

    @property
    def translation_locale(self) -> str:
        """Locale identifier for single-shot translation services.

        Chinese is requested as Simplified Chinese.
        """
        if self is TargetLanguage.CHINESE:
            return "zh-Hans"
        return self.value

    @classmethod
    def from_code(cls, code: str) -> TargetLanguage:
        """Resolve a language code case-insensitively.

        Raises:
            ValueError: If the code is not a supported target language.
        """
        try:
            return cls(code.strip().lower())
        except ValueError:
            supported: str = ", ".join(member.value for member in cls)
            msg: str = f"Unsupported target language '{code}'. Supported: {supported}"
            raise ValueError(msg) from None


_LANGUAGE_NAMES: dict[TargetLanguage, str] = {
    TargetLanguage.RUSSIAN: "Russian",
    TargetLanguage.CHINESE: "Chinese",
    TargetLanguage.VIETNAMESE: "Vietnamese",
    TargetLanguage.FRENCH: "French",
}

_NATIVE_NAMES: dict[TargetLanguage, str] = {
    TargetLanguage.RUSSIAN: "Русский",
    TargetLanguage.CHINESE: "中文",
    TargetLanguage.VIETNAMESE: "Tiếng Việt",
    TargetLanguage.FRENCH: "Français",
}

_FLAGS: dict[TargetLanguage, str] = {
    TargetLanguage.RUSSIAN: "🇷🇺",
    TargetLanguage.CHINESE: "🇨🇳",
    TargetLanguage.VIETNAMESE: "🇻🇳",
    TargetLanguage.FRENCH: "🇫🇷",
}


@dataclass(frozen=True)
class TranslationRequest:
    """One translation call.

    Attributes:
        source_text (str): English text to translate. Must not be blank.
        target_language (TargetLanguage): Language to translate into.
    """

    source_text: str
    target_language: TargetLanguage

    def __post_init__(self) -> None:
        if not self.source_text or not self.source_text.strip():
            msg = "Source text must not be empty"
            raise ValueError(msg)


@dataclass
class TranslationResult:
    """Outcome of one successful orchestration run.

    Attributes:
        text (str): Cleaned translation text.
        time_to_first_token (float | None): Seconds from start to the first streamed chunk.
            Always None for single-shot backends.
        total_time (float | None): Seconds from start to completion.
        tokens_per_second (float | None): Last throughput reported by the generator.
    """

    text: str
    time_to_first_token: float | None = None
    total_time: float | None = None
    tokens_per_second: float | None = None

    def __str__(self) -> str:
        return self.text

    @property
    def stats_text(self) -> str | None:
        """Throughput formatted for display, e.g. "12.0 tokens/s"."""
        if self.tokens_per_second is None:
            return None
        return f"{self.tokens_per_second:.1f} tokens/s"
