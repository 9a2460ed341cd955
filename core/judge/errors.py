"""Exceptions raised by the translation judge.

Every exception carries a human-readable message suitable for direct display.
"""

from __future__ import annotations

__all__: list[str] = [
    "JudgeError",
    "JudgeInvalidResponseError",
    "JudgeMaxRetriesExceededError",
    "JudgeMissingCredentialError",
    "JudgeNetworkError",
    "JudgeParsingError",
    "JudgeTimeoutError",
]


class JudgeError(Exception):
    """An error occurred while evaluating translations."""

    default_message: str = "The translation judge failed."

    def __init__(self, msg: str | None = None) -> None:
        super().__init__(msg or self.default_message)


class JudgeMissingCredentialError(JudgeError):
    default_message = "API key is missing. Please set the OPENAI_API_KEY environment variable."

    def __init__(self, env_name: str | None = None) -> None:
        if env_name:
            super().__init__(f"API key is missing. Please set the {env_name} environment variable.")
        else:
            super().__init__()


class JudgeInvalidResponseError(JudgeError):
    default_message = "Received an invalid response from the LLM judge."


class JudgeNetworkError(JudgeError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Network error: {detail}")


class JudgeParsingError(JudgeError):
    def __init__(self, detail: str) -> None:
        super().__init__(f"Failed to parse judge response: {detail}")


class JudgeTimeoutError(JudgeError):
    default_message = "Request timed out. Please try again."


class JudgeMaxRetriesExceededError(JudgeError):
    default_message = "Failed after multiple attempts. Please check your connection and try again."
