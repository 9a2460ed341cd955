"""Translation backend implementations.

Importing this package registers every backend with ``TransInterface.registered``.

Modules:
- LocalModelBackend: Streaming translation with a locally downloaded model.
- FoundationModelBackend: Single-turn translation with a general-purpose model served over HTTP.
- DeeplTranslation: Machine translation through the DeepL API.
"""

from core.trans.engines.foundation_model import FoundationModelBackend
from core.trans.engines.local_model import LocalModelBackend
from core.trans.engines.trans_deepl import DeeplTranslation

__all__: list[str] = [
    "DeeplTranslation",
    "FoundationModelBackend",
    "LocalModelBackend",
]
