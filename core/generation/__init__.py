"""Streaming generation over locally loaded models."""

from core.generation.server_handle import ServerModelHandle
from core.generation.session import GenerationCancelledError, GenerationError, LocalModelSession, ModelHandle

__all__: list[str] = [
    "GenerationCancelledError",
    "GenerationError",
    "LocalModelSession",
    "ModelHandle",
    "ServerModelHandle",
]
