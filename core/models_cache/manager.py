"""Local model catalog and lifecycle.

``ModelLifecycleManager`` tracks which catalog models are present on disk, downloads and deletes them,
and keeps the handle of the selected model loaded through the shared ``ModelHandleRegistry``.
Background operations record failures in ``error_message`` instead of raising.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from core.models_cache.store import (
    ModelDeleteError,
    ModelLifecycleError,
    ModelLoadError,
    UnknownModelError,
    locate_artifacts,
)
from models.model_models import DEFAULT_MODEL_CATALOG
from utils.file_utils import FileUtils, FileUtilsError
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Iterable
    from pathlib import Path

    from core.generation.session import ModelHandle
    from core.models_cache.registry import ModelHandleRegistry
    from core.models_cache.store import ModelStore
    from models.model_models import ModelDescriptor

__all__: list[str] = ["DOWNLOAD_PROGRESS_CAP", "ModelLifecycleManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

# Progress reported by the store is held below 1.0 until the download has actually finished.
DOWNLOAD_PROGRESS_CAP: float = 0.95


class ModelLifecycleManager:
    """Manages the local model catalog, download state and the selected model's handle.

    Args:
        store (ModelStore): Backend that downloads and loads artifacts.
        registry (ModelHandleRegistry): Shared handle cache.
        cache_root (Path): Root of the local model cache; artifacts live in ``<cache_root>/models/<artifact_name>``.
        default_model_id (str): Model preferred by ``select_default``.
        catalog (Iterable[ModelDescriptor]): Models offered, in display order.

    Attributes:
        selected (ModelDescriptor | None): Currently selected model.
        handle (ModelHandle | None): Loaded handle of the selected model.
        is_loading_model (bool): Whether the selected model is being loaded.
        loading_status (str | None): Human-readable loading status.
        error_message (str | None): Last failure of a background operation.
    """

    def __init__(
        self,
        *,
        store: ModelStore,
        registry: ModelHandleRegistry,
        cache_root: Path,
        default_model_id: str = "gemma3n-e2b",
        catalog: Iterable[ModelDescriptor] = DEFAULT_MODEL_CATALOG,
    ) -> None:
        self.store: ModelStore = store
        self.registry: ModelHandleRegistry = registry
        self.cache_root: Path = cache_root
        self.default_model_id: str = default_model_id
        self._models: list[ModelDescriptor] = [descriptor.copy() for descriptor in catalog]

        self.selected: ModelDescriptor | None = None
        self.handle: ModelHandle | None = None
        self.is_loading_model: bool = False
        self.loading_status: str | None = None
        self.error_message: str | None = None

        self._refreshing: bool = False
        self._download_task: asyncio.Task[None] | None = None

    @property
    def is_model_ready(self) -> bool:
        return self.handle is not None

    def list_models(self) -> list[ModelDescriptor]:
        """Snapshot of the catalog in fixed order."""
        return [descriptor.copy() for descriptor in self._models]

    def get(self, model_id: str) -> ModelDescriptor:
        """Return the live descriptor for ``model_id``.

        Raises:
            UnknownModelError: If the id is not in the catalog.
        """
        for descriptor in self._models:
            if descriptor.id == model_id:
                return descriptor
        known: str = ", ".join(descriptor.id for descriptor in self._models)
        msg = f"Unknown model '{model_id}'. Available: {known}"
        raise UnknownModelError(msg)

    def model_dir(self, descriptor: ModelDescriptor) -> Path:
        return self.cache_root / "models" / descriptor.artifact_name

    async def refresh_download_state(self) -> None:
        """Re-scan the cache directory, pick the default model and load it.

        A call made while another refresh is running returns immediately.
        """
        if self._refreshing:
            logger.debug("Download state refresh already running, skipping")
            return

        self._refreshing = True
        try:
            model_dirs: list[Path] = [self.model_dir(descriptor) for descriptor in self._models]
            found: list[bool] = await asyncio.to_thread(
                lambda: [locate_artifacts(model_dir) is not None for model_dir in model_dirs]
            )
            for descriptor, downloaded in zip(self._models, found, strict=True):
                descriptor.mark_downloaded(downloaded=downloaded)
                logger.debug("Model '%s' downloaded: %s", descriptor.id, downloaded)

            self.select_default()
            if self.selected is not None and self.selected.downloaded:
                logger.info("Auto-loading selected model '%s'", self.selected.id)
                await self.load_selected()
        finally:
            self._refreshing = False

    def select_default(self) -> ModelDescriptor | None:
        """Select the configured default if downloaded, else the first downloaded model, else nothing."""
        downloaded: list[ModelDescriptor] = [descriptor for descriptor in self._models if descriptor.downloaded]
        preferred: list[ModelDescriptor] = [d for d in downloaded if d.id == self.default_model_id]
        self.selected = (preferred or downloaded or [None])[0]
        logger.debug("Default model: '%s'", self.selected.id if self.selected else None)
        return self.selected

    async def select(self, model_id: str) -> None:
        """Select a model; load it if downloaded, otherwise drop the current handle."""
        descriptor: ModelDescriptor = self.get(model_id)
        self.selected = descriptor
        if descriptor.downloaded:
            await self.load_selected()
        else:
            self.handle = None
            self.loading_status = None

    async def load(self, model_id: str) -> ModelHandle:
        """Load a downloaded model through the shared registry.

        Raises:
            UnknownModelError: If the id is not in the catalog.
            ModelLoadError: If the model is not downloaded or the store fails to load it.
        """
        descriptor: ModelDescriptor = self.get(model_id)
        if not descriptor.downloaded:
            msg = f"Model '{model_id}' is not downloaded"
            raise ModelLoadError(msg)

        try:
            return await self.registry.get_or_load(model_id, lambda: self.store.load(descriptor))
        except ModelLoadError:
            raise
        except Exception as err:
            msg = f"Failed to load model '{model_id}': {err}"
            raise ModelLoadError(msg) from err

    async def load_selected(self) -> None:
        """Load the selected model, recording any failure in ``error_message``."""
        if self.selected is None or not self.selected.downloaded:
            logger.warning("Cannot load model: nothing downloaded is selected")
            return

        descriptor: ModelDescriptor = self.selected
        self.is_loading_model = True
        self.loading_status = f"Loading {descriptor.display_name}..."
        try:
            handle: ModelHandle = await self.load(descriptor.id)
        except ModelLifecycleError as err:
            self.loading_status = "Model loading failed"
            self.error_message = f"Failed to load model: {err}"
            logger.error(self.error_message)
            return
        finally:
            self.is_loading_model = False

        if self.selected is descriptor:
            self.handle = handle
            self.loading_status = None

    async def download(self, model_id: str) -> None:
        """Download a model, cancelling any download still in flight.

        Progress is capped at 0.95 until success sets it to 1.0 and marks the model downloaded.
        On failure the descriptor is reset and the error recorded.
        """
        try:
            descriptor: ModelDescriptor = self.get(model_id)
        except UnknownModelError as err:
            self.error_message = str(err)
            logger.error(self.error_message)
            return

        previous: asyncio.Task[None] | None = self._download_task
        if previous is not None and not previous.done():
            logger.info("Cancelling previous download")
            previous.cancel()

        descriptor.downloading = True
        descriptor.progress = 0.0
        task: asyncio.Task[None] = asyncio.create_task(self._run_download(descriptor))
        self._download_task = task
        try:
            await task
        except asyncio.CancelledError:
            current: asyncio.Task | None = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            logger.info("Download of '%s' was superseded", descriptor.id)

    async def _run_download(self, descriptor: ModelDescriptor) -> None:
        def on_progress(fraction: float) -> None:
            descriptor.progress = min(max(fraction, 0.0), DOWNLOAD_PROGRESS_CAP)

        try:
            handle: ModelHandle = await self.store.download(descriptor, on_progress)
        except asyncio.CancelledError:
            descriptor.downloading = False
            descriptor.progress = 0.0
            raise
        except Exception as err:  # noqa: BLE001
            descriptor.downloading = False
            descriptor.progress = 0.0
            self.error_message = f"Download failed: {err}"
            logger.error(self.error_message)
            return

        descriptor.mark_downloaded(downloaded=True)
        await self.registry.put(descriptor.id, handle)
        logger.info("Download completed for '%s'", descriptor.id)

        if self.selected is None:
            self.selected = descriptor
        if self.selected is descriptor:
            self.handle = handle
            self.loading_status = None

    async def delete(self, model_id: str) -> None:
        """Remove a model's artifacts and cached handle; clear the selection if it was selected."""
        try:
            descriptor: ModelDescriptor = self.get(model_id)
            await self._delete_artifacts(descriptor)
        except ModelLifecycleError as err:
            self.error_message = f"Failed to delete model: {err}"
            logger.error(self.error_message)
            return

        await self.registry.evict(descriptor.id)
        descriptor.mark_downloaded(downloaded=False)
        if self.selected is descriptor:
            self.selected = None
            self.handle = None
            self.loading_status = None
        logger.info("Model '%s' deleted", descriptor.id)

    async def _delete_artifacts(self, descriptor: ModelDescriptor) -> None:
        model_dir: Path = self.model_dir(descriptor)
        if not await asyncio.to_thread(model_dir.exists):
            logger.warning("No model files found to delete at '%s'", model_dir)
            return
        try:
            await asyncio.to_thread(FileUtils.remove_tree, model_dir)
        except FileUtilsError as err:
            raise ModelDeleteError(str(err)) from err

    async def close(self) -> None:
        """Cancel an in-flight download and release the selected handle."""
        if self._download_task is not None and not self._download_task.done():
            self._download_task.cancel()
        self.handle = None
        await self.registry.clear()
