"""Process-wide cache of loaded model handles.

``ModelHandleRegistry`` guarantees at most one in-flight load per model id: the first caller starts the load
as a background task and every concurrent caller awaits the same future. Loaded handles are kept in an LRU
cache bounded by ``max_cached``.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import TYPE_CHECKING

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Awaitable, Callable

    from core.generation.session import ModelHandle

__all__: list[str] = ["ModelHandleRegistry"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class ModelHandleRegistry:
    """Caches loaded model handles and deduplicates concurrent loads.

    All mutations of the cache and of the in-flight map happen under one ``asyncio.Lock``.

    Args:
        max_cached (int): Maximum number of handles kept. The least recently used handle is evicted first.
    """

    def __init__(self, max_cached: int = 2) -> None:
        if max_cached < 1:
            msg = "max_cached must be at least 1"
            raise ValueError(msg)
        self.max_cached: int = max_cached
        self._cache: OrderedDict[str, ModelHandle] = OrderedDict()
        self._inflight: dict[str, asyncio.Future[ModelHandle]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._lock: asyncio.Lock = asyncio.Lock()

    def cached(self, model_id: str) -> ModelHandle | None:
        return self._cache.get(model_id)

    def is_loading(self, model_id: str) -> bool:
        return model_id in self._inflight

    @property
    def cached_ids(self) -> list[str]:
        """Cached model ids, least recently used first."""
        return list(self._cache.keys())

    async def get_or_load(self, model_id: str, loader: Callable[[], Awaitable[ModelHandle]]) -> ModelHandle:
        """Return the cached handle for ``model_id``, loading it with ``loader`` if needed.

        Args:
            model_id (str): Model identifier.
            loader (Callable[[], Awaitable[ModelHandle]]): Coroutine factory performing the actual load.
                Only called when no handle is cached and no load is in flight.

        Returns:
            ModelHandle: The loaded handle. Concurrent callers receive the same object.

        Raises:
            Exception: Whatever ``loader`` raised. The in-flight mark is cleared before it propagates.
        """
        async with self._lock:
            handle: ModelHandle | None = self._cache.get(model_id)
            if handle is not None:
                self._cache.move_to_end(model_id)
                logger.debug("Model handle cache hit: '%s'", model_id)
                return handle

            fut: asyncio.Future[ModelHandle] | None = self._inflight.get(model_id)
            if fut is None:
                fut = asyncio.get_running_loop().create_future()
                self._inflight[model_id] = fut
                task: asyncio.Task[None] = asyncio.create_task(self._run_load(model_id, loader, fut))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
                logger.debug("Started load for '%s'", model_id)
            else:
                logger.debug("Joining in-flight load for '%s'", model_id)

        # Shielded so a cancelled waiter does not cancel the load shared with other waiters.
        return await asyncio.shield(fut)

    async def _run_load(
        self,
        model_id: str,
        loader: Callable[[], Awaitable[ModelHandle]],
        fut: asyncio.Future[ModelHandle],
    ) -> None:
        try:
            handle: ModelHandle = await loader()
        except asyncio.CancelledError:
            async with self._lock:
                self._inflight.pop(model_id, None)
            fut.cancel()
            raise
        except Exception as err:  # noqa: BLE001
            logger.warning("Loading model '%s' failed: %s", model_id, err)
            async with self._lock:
                self._inflight.pop(model_id, None)
            if not fut.done():
                fut.set_exception(err)
            return

        async with self._lock:
            self._cache[model_id] = handle
            self._cache.move_to_end(model_id)
            self._evict_over_capacity()
            self._inflight.pop(model_id, None)
        if not fut.done():
            fut.set_result(handle)
        logger.info("Model '%s' loaded", model_id)

    def _evict_over_capacity(self) -> None:
        while len(self._cache) > self.max_cached:
            evicted_id, _ = self._cache.popitem(last=False)
            logger.info("Evicted model handle '%s' from cache", evicted_id)

    async def put(self, model_id: str, handle: ModelHandle) -> None:
        """Cache a handle obtained outside ``get_or_load`` (e.g. returned by a download)."""
        async with self._lock:
            self._cache[model_id] = handle
            self._cache.move_to_end(model_id)
            self._evict_over_capacity()

    async def evict(self, model_id: str) -> bool:
        """Drop the cached handle for ``model_id``. Returns True if one was cached."""
        async with self._lock:
            removed: bool = self._cache.pop(model_id, None) is not None
        if removed:
            logger.debug("Evicted model handle '%s' on request", model_id)
        return removed

    async def clear(self) -> None:
        """Drop every cached handle and cancel loads still in flight."""
        async with self._lock:
            self._cache.clear()
            for fut in self._inflight.values():
                if not fut.done():
                    fut.cancel()
            self._inflight.clear()
        for task in list(self._tasks):
            task.cancel()
        logger.info("Model handle registry cleared")
