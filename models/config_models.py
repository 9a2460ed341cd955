"""Configuration data models for TransJudge.

Each dataclass mirrors one section of ``transjudge.ini``. Field names are the INI keys;
default values also define the type each INI value is coerced to.
"""

from __future__ import annotations

from dataclasses import dataclass, field

__all__: list[str] = [
    "Config",
    "FoundationModel",
    "General",
    "Judge",
    "LocalModel",
    "Translation",
]


@dataclass
class General:
    DEBUG: bool = False
    VERSION: str = ""
    LOG_FILE: str = ""
    LOG_LEVEL: str = "INFO"
    SCRIPT_NAME: str = ""


@dataclass
class Translation:
    DEFAULT_LANGUAGE: str = "fr"
    ENGINE: list[str] = field(default_factory=lambda: ["local_model", "foundation_model", "deepl"])


@dataclass
class LocalModel:
    CACHE_ROOT: str = "~/.cache/transjudge"
    SERVER: str = "http://127.0.0.1:8080/v1/chat/completions"
    HUB_URL: str = "https://huggingface.co"
    DEFAULT_MODEL: str = "gemma3n-e2b"
    MAX_TOKENS: int = 512
    TEMPERATURE: float = 0.3
    MAX_CACHED_MODELS: int = 2


@dataclass
class FoundationModel:
    SERVER: str = "http://127.0.0.1:11434/v1/chat/completions"
    MODEL: str = "llama3.2"
    TIMEOUT: float = 60.0


@dataclass
class Judge:
    API_URL: str = "https://api.openai.com/v1/chat/completions"
    MODEL: str = "gpt-4"
    API_KEY_ENV: str = "OPENAI_API_KEY"
    TEMPERATURE: float = 0.3
    TIMEOUT: float = 60.0
    MAX_ATTEMPTS: int = 3
    BASE_RETRY_DELAY: float = 2.0


@dataclass
class Config:
    GENERAL: General = field(default_factory=General)
    TRANSLATION: Translation = field(default_factory=Translation)
    LOCAL_MODEL: LocalModel = field(default_factory=LocalModel)
    FOUNDATION_MODEL: FoundationModel = field(default_factory=FoundationModel)
    JUDGE: Judge = field(default_factory=Judge)
