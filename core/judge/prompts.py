"""Prompts sent to the judge model."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from models.translation_models import TargetLanguage

__all__: list[str] = ["build_system_prompt", "build_user_prompt"]

_SYSTEM_PROMPT: str = """You are an expert translation quality evaluator specializing in banking and financial app translations. Your task is to compare THREE translations of the same source text and provide an objective evaluation.

TRANSLATION SYSTEMS:
1. AFM (Apple Foundation Models) - On-device foundation model
2. MLX (MLX/Gemma) - Local Hugging Face model
3. APPLE_TRANSLATION (Apple Translation Framework) - Built-in translation service

EVALUATION CRITERIA:
1. **Accuracy**: How well does the translation convey the original meaning?
2. **Fluency**: How natural does the translation read in the target language?
3. **Terminology**: Are banking/financial terms translated appropriately?
4. **Consistency**: Are proper nouns, brand names, and formatting preserved?
5. **Cultural Appropriateness**: Is the translation suitable for the target audience?

SCORING GUIDELINES:
- 9-10: Excellent - Professional quality, ready for production
- 7-8: Good - Minor issues that don't affect understanding
- 5-6: Fair - Noticeable issues but still understandable
- 3-4: Poor - Significant errors affecting comprehension
- 1-2: Very Poor - Major errors, needs complete rewrite

RESPONSE FORMAT:
You MUST respond in the following exact JSON format (no markdown, no code blocks):
{
    "afm_score": <1-10>,
    "mlx_score": <1-10>,
    "apple_translation_score": <1-10>,
    "overall_score": <1-10>,
    "winner": "<AFM|MLX|APPLE_TRANSLATION|TIE>",
    "explanation": "<brief 1-2 sentence explanation>",
    "key_differences": "<specific differences between the three translations>"
}

Be objective, fair, and focus on translation quality rather than stylistic preferences.
If a translation is marked as "(No translation provided)", give it a score of 0 and don't consider it for winner."""


def build_system_prompt() -> str:
    return _SYSTEM_PROMPT


def build_user_prompt(
    *,
    source_text: str,
    afm_translation: str,
    mlx_translation: str,
    apple_translation: str,
    target_language: TargetLanguage,
) -> str:
    """Embed the source text and the three candidates, each labelled by backend."""
    return f"""Please evaluate the following translations from English to {target_language.language_name}:

**SOURCE TEXT (English):**
{source_text}

**AFM TRANSLATION (Apple Foundation Models):**
{afm_translation}

**MLX TRANSLATION (MLX/Gemma - Hugging Face):**
{mlx_translation}

**APPLE_TRANSLATION (Apple Translation Framework):**
{apple_translation}

Evaluate all three translations and provide your assessment in the required JSON format.
Remember: Use "AFM" for Apple Foundation Models, "MLX" for MLX/Gemma, "APPLE_TRANSLATION" for Apple Translation Framework, or "TIE" if multiple are equal."""
