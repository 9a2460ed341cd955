"""Prompt construction and output cleanup shared by every generative backend."""

from __future__ import annotations

from typing import TYPE_CHECKING

from models.generation_models import ChatPrompt

if TYPE_CHECKING:
    from models.translation_models import TargetLanguage

__all__: list[str] = ["PromptBuilder"]

_RULES: str = """CRITICAL RULES:
1. NEVER translate: bank names, company names, brand names, product names, or any proper nouns - keep them EXACTLY as written
2. ONLY translate the language - do NOT add, remove, or modify any content
3. Preserve meaning and intent over literal word-for-word translation
4. Keep exact formatting, structure, numbers, symbols, and punctuation unchanged
5. Output ONLY the translated text - no explanations or commentary"""

_SYSTEM_PROMPT: str = (
    "You are an expert language translator for a banking mobile app, "
    "specialized in translating English to Chinese, Vietnamese, French, and Russian.\n\n" + _RULES
)


class PromptBuilder:
    """Builds translation prompts for one source text and target language.

    Chat-style models receive ``system_prompt()`` and ``user_prompt()`` as separate turns;
    single-turn models receive ``full_prompt()``.
    """

    def __init__(self, source_text: str, target_language: TargetLanguage) -> None:
        self.source_text: str = source_text
        self.target_language: TargetLanguage = target_language

    @staticmethod
    def system_prompt() -> str:
        return _SYSTEM_PROMPT

    def user_prompt(self) -> str:
        language: str = self.target_language.language_name
        return f"Translate the following text from English to {language}:\n\n{self.source_text}"

    def full_prompt(self) -> str:
        """Instructions, rules and the user prompt in a single block."""
        header: str = (
            "You are an expert language translator for a banking mobile app, "
            f"specialized in translating English to {self.target_language.language_name}."
        )
        return f"{header}\n\n{_RULES}\n\n{self.user_prompt()}"

    def chat_prompt(self) -> ChatPrompt:
        return ChatPrompt(system=self.system_prompt(), user=self.user_prompt())

    @property
    def prefixes_to_remove(self) -> list[str]:
        language: str = self.target_language.language_name
        return [
            "Translation:",
            "Here is the translation:",
            "The translation is:",
            f"In {language}:",
            f"{language}:",
        ]

    def clean_output(self, raw: str) -> str:
        """Strip boilerplate prefixes that models tend to put before the translation.

        Each prefix is checked once, in order and case-insensitively, against the text left by the
        previous checks. A prefix that repeats after its own check is kept.

        Args:
            raw (str): Raw model output.

        Returns:
            str: Trimmed translation text.
        """
        cleaned: str = raw.strip()
        for prefix in self.prefixes_to_remove:
            if cleaned.lower().startswith(prefix.lower()):
                cleaned = cleaned[len(prefix) :].strip()
        return cleaned
