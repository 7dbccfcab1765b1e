"""
SampleQueue — serialises sample evaluation for one user session.

This is a pure asyncio concurrency primitive with no HA or network dependencies.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

_LOGGER = logging.getLogger(__name__)


class SampleQueue:
    """
    Processes items one at a time, in arrival order, with a single worker.

    Producers never block: put() may be called from any callback running in
    the event loop. A failing handler is logged and the next item is processed.
    Once shut down the queue stays closed: later items are dropped.
    """

    def __init__(self, handler: Callable[[Any], Awaitable[None]]) -> None:
        self._handler = handler
        self._queue: asyncio.Queue | None = None
        self._worker: asyncio.Task | None = None
        self._closed = False

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, item: Any) -> None:
        """Schedule item for processing, starting the worker on first use."""
        if self._closed:
            _LOGGER.debug("SampleQueue is shut down, dropping %s", type(item).__name__)
            return
        self._ensure_worker()
        self._queue.put_nowait(item)

    async def join(self) -> None:
        """Wait until every queued item has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def shutdown(self) -> None:
        """Cancel the worker, drop anything still queued and refuse new items."""
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
            results = await asyncio.gather(self._worker, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception) and not isinstance(result, asyncio.CancelledError):
                    _LOGGER.debug("SampleQueue worker error during shutdown: %s", result)
        self._worker = None
        self._queue = None

    def _ensure_worker(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._worker is None or self._worker.done():
            self._worker = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        """Consume items indefinitely."""
        queue = self._queue
        while True:
            item = await queue.get()
            try:
                await self._handler(item)
            except Exception as exc:  # noqa: BLE001
                _LOGGER.error("Error processing queued sample: %s", exc, exc_info=True)
            finally:
                queue.task_done()
