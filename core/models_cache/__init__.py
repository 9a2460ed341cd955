"""Local model lifecycle: catalog, download state, artifact storage and the shared handle cache."""

from core.models_cache.manager import DOWNLOAD_PROGRESS_CAP, ModelLifecycleManager
from core.models_cache.registry import ModelHandleRegistry
from core.models_cache.store import (
    HubModelStore,
    ModelDeleteError,
    ModelDownloadError,
    ModelLifecycleError,
    ModelLoadError,
    ModelStore,
    UnknownModelError,
    locate_artifacts,
)

__all__: list[str] = [
    "DOWNLOAD_PROGRESS_CAP",
    "HubModelStore",
    "ModelDeleteError",
    "ModelDownloadError",
    "ModelHandleRegistry",
    "ModelLifecycleError",
    "ModelLifecycleManager",
    "ModelLoadError",
    "ModelStore",
    "UnknownModelError",
    "locate_artifacts",
]
