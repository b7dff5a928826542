"""
Background write queue for fire-and-forget persistence.

Mutations call `submit()` and return immediately. A single worker task on the
event loop drains requests in submission order and runs each one off the loop
thread. A failing request is logged and published to `on_error` subscribers;
it never reaches the code that submitted it.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

WriteRequest = Tuple[Callable[..., Any], Tuple[Any, ...]]


class PersistenceWriter:
    """Ordered, non-blocking write dispatcher with an error-observation channel."""

    def __init__(self):
        self._queue: "asyncio.Queue[WriteRequest]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._error_callbacks: List[Callable[[Exception], Any]] = []
        self.failures = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def on_error(self, callback: Callable[[Exception], Any]) -> None:
        """Register a callback receiving every persistence failure."""
        self._error_callbacks.append(callback)

    def off_error(self, callback: Callable[[Exception], Any]) -> None:
        if callback in self._error_callbacks:
            self._error_callbacks.remove(callback)

    def submit(self, fn: Callable[..., Any], *args: Any) -> None:
        """Enqueue a write. Never blocks and never raises for storage failures."""
        self._queue.put_nowait((fn, args))

    def start(self) -> None:
        """Spawn the worker on the running loop (idempotent)."""
        if self.is_running:
            return
        self._worker = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def drain(self) -> None:
        """Wait until every request submitted so far has been processed."""
        if not self.is_running:
            self.start()
        await self._queue.join()

    def flush(self) -> int:
        """Apply pending requests synchronously on the calling thread. Returns the count applied."""
        applied = 0
        while True:
            try:
                fn, args = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return applied
            try:
                self._apply(fn, args)
            finally:
                self._queue.task_done()
            applied += 1

    def discard_pending(self) -> int:
        """Drop queued requests without applying them. Returns the count dropped."""
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return dropped
            self._queue.task_done()
            dropped += 1

    async def _run(self) -> None:
        while True:
            fn, args = await self._queue.get()
            try:
                error = await asyncio.to_thread(self._execute, fn, args)
                if error is not None:
                    self._report(fn, error)
            finally:
                self._queue.task_done()

    def _apply(self, fn: Callable[..., Any], args: Tuple[Any, ...]) -> None:
        error = self._execute(fn, args)
        if error is not None:
            self._report(fn, error)

    @staticmethod
    def _execute(fn: Callable[..., Any], args: Tuple[Any, ...]) -> Optional[Exception]:
        try:
            fn(*args)
        except Exception as e:
            return e
        return None

    def _report(self, fn: Callable[..., Any], error: Exception) -> None:
        self.failures += 1
        logger.warning(f"Persistence failed for {getattr(fn, '__name__', fn)}: {error}")
        for callback in self._error_callbacks:
            try:
                result = callback(error)
                if asyncio.iscoroutine(result):
                    try:
                        asyncio.get_running_loop().create_task(result)
                    except RuntimeError:
                        result.close()
                        logger.error("Async persistence error callback dropped: no running loop")
            except Exception as e:
                logger.error(f"Error in persistence error callback: {e}")
