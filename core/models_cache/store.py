"""Storage backend for local model artifacts and the related exceptions.

``ModelStore`` is the boundary to whatever hosts the weights: it downloads the artifacts of a
``ModelDescriptor`` and turns them into a loaded ``ModelHandle``. ``HubModelStore`` downloads from a
Hugging Face compatible hub and serves the weights through a local inference server.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

from core.generation.server_handle import ServerModelHandle
from handlers.async_comm import AsyncCommError
from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

    from core.generation.session import ModelHandle
    from handlers.async_comm import AsyncHttp
    from models.model_models import ModelDescriptor

__all__: list[str] = [
    "WEIGHT_PATTERNS",
    "HubModelStore",
    "ModelDeleteError",
    "ModelDownloadError",
    "ModelLifecycleError",
    "ModelLoadError",
    "ModelStore",
    "ProgressCallback",
    "UnknownModelError",
    "locate_artifacts",
]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

type ProgressCallback = Callable[[float], None]

CONFIG_FILENAME: str = "config.json"
WEIGHT_PATTERNS: list[str] = ["*.safetensors", "*.bin", "model.safetensors.index.json"]


def locate_artifacts(model_dir: Path) -> Path | None:
    """Find the directory holding a usable set of model artifacts.

    A usable directory contains "config.json" and at least one weight file. When ``model_dir`` has a
    "snapshots" subdirectory only the snapshots are considered and the first valid one, in name order, wins.
    Blocking; run it through ``asyncio.to_thread``.

    Args:
        model_dir (Path): ``<cache_root>/models/<artifact_name>``.

    Returns:
        Path | None: The artifact directory, or None if the model is not (completely) downloaded.
    """
    if not model_dir.is_dir():
        return None

    snapshots: Path = model_dir / "snapshots"
    candidates: list[Path] = [model_dir]
    if snapshots.is_dir():
        candidates = sorted(p for p in snapshots.iterdir() if p.is_dir())
    for candidate in candidates:
        if (candidate / CONFIG_FILENAME).is_file() and FileUtils.contains_any(candidate, WEIGHT_PATTERNS):
            return candidate
    return None


class ModelLifecycleError(Exception):
    """An error occurred while managing local models."""


class ModelLoadError(ModelLifecycleError):
    """A model could not be loaded."""


class ModelDownloadError(ModelLifecycleError):
    """A model could not be downloaded."""


class ModelDeleteError(ModelLifecycleError):
    """A model's artifacts could not be deleted."""


class UnknownModelError(ModelLifecycleError):
    """The model id is not in the catalog."""


class ModelStore(ABC):
    """Downloads model artifacts and loads them into handles."""

    @abstractmethod
    async def load(self, descriptor: ModelDescriptor) -> ModelHandle:
        """Load already downloaded artifacts.

        Raises:
            ModelLoadError: If the model cannot be loaded.
        """
        raise NotImplementedError

    @abstractmethod
    async def download(self, descriptor: ModelDescriptor, progress_callback: ProgressCallback) -> ModelHandle:
        """Download the artifacts, reporting progress in [0, 1], then load them.

        Raises:
            ModelDownloadError: If the download fails.
        """
        raise NotImplementedError


class HubModelStore(ModelStore):
    """Model store backed by a Hugging Face compatible hub and a local inference server.

    Artifacts are stored under ``<cache_root>/models/<artifact_name>``; the inference server is given
    that directory as the model name.

    Args:
        cache_root (Path): Root directory of the local model cache.
        hub_url (str): Base URL of the hub (e.g. "https://huggingface.co").
        server_url (str): Chat-completions endpoint of the local inference server.
        http (AsyncHttp): Shared HTTP client.
    """

    def __init__(self, *, cache_root: Path, hub_url: str, server_url: str, http: AsyncHttp) -> None:
        self.cache_root: Path = cache_root
        self.hub_url: str = hub_url.rstrip("/")
        self.server_url: str = server_url
        self.http: AsyncHttp = http

    def model_dir(self, descriptor: ModelDescriptor) -> Path:
        return self.cache_root / "models" / descriptor.artifact_name

    async def load(self, descriptor: ModelDescriptor) -> ModelHandle:
        model_dir: Path = self.model_dir(descriptor)
        artifacts: Path | None = await asyncio.to_thread(locate_artifacts, model_dir)
        if artifacts is None:
            msg = f"No complete artifacts for '{descriptor.id}' under '{model_dir}'"
            raise ModelLoadError(msg)
        logger.debug("Serving '%s' from '%s' via '%s'", descriptor.id, artifacts, self.server_url)
        return ServerModelHandle(descriptor.id, model_name=artifacts, server_url=self.server_url, http=self.http)

    async def download(self, descriptor: ModelDescriptor, progress_callback: ProgressCallback) -> ModelHandle:
        """Download every file listed for the repository, one at a time.

        Progress is the fraction of files completed.
        """
        filenames: list[str] = await self._list_files(descriptor)
        model_dir: Path = self.model_dir(descriptor)
        logger.info("Downloading %d files for '%s'", len(filenames), descriptor.id)

        for index, filename in enumerate(filenames, start=1):
            url: str = f"{self.hub_url}/{descriptor.artifact_name}/resolve/main/{filename}"
            try:
                await self.http.download(url=url, destination=model_dir / filename)
            except AsyncCommError as err:
                msg = f"Failed to download '{filename}' for '{descriptor.id}': {err}"
                raise ModelDownloadError(msg) from err
            progress_callback(index / len(filenames))

        return await self.load(descriptor)

    async def _list_files(self, descriptor: ModelDescriptor) -> list[str]:
        url: str = f"{self.hub_url}/api/models/{descriptor.artifact_name}"
        try:
            info: Any = await self.http.get(url=url)
        except AsyncCommError as err:
            msg = f"Failed to query repository '{descriptor.artifact_name}': {err}"
            raise ModelDownloadError(msg) from err

        siblings: Any = info.get("siblings") if isinstance(info, dict) else None
        if not isinstance(siblings, list):
            msg = f"Unexpected repository listing for '{descriptor.artifact_name}'"
            raise ModelDownloadError(msg)
        filenames: list[str] = [
            entry["rfilename"] for entry in siblings if isinstance(entry, dict) and entry.get("rfilename")
        ]
        if not filenames:
            msg = f"Repository '{descriptor.artifact_name}' has no files"
            raise ModelDownloadError(msg)
        return filenames
