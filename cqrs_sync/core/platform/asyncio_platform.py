"""
Asyncio Platform

Default platform: timers are event-loop call_later handles and background
coroutines are tracked tasks. Fatal errors escaping either are logged with
traceback and forwarded to an optional owner hook, which decides whether to
crash, alert or carry on.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional, Set

logger = logging.getLogger(__name__)


class AsyncioPlatform:
    """
    Platform backed by an asyncio event loop.

    Usage:
        async def main():
            platform = AsyncioPlatform(on_error=lambda exc: stop.set())
            client = CommandOutboxClient(http, repository, platform=platform)
            ...
            await platform.close()

    Must be created inside a running loop unless a loop is passed.
    """

    def __init__(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_error: Optional[Callable[[BaseException], None]] = None
    ):
        self._loop = loop or asyncio.get_running_loop()
        self._on_error = on_error
        self._handles: Set[asyncio.TimerHandle] = set()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def set_timeout(self, fn: Callable[[], Any], delay_ms: int) -> asyncio.TimerHandle:
        handle: Optional[asyncio.TimerHandle] = None

        def run():
            self._handles.discard(handle)
            try:
                fn()
            except Exception as e:
                self.report_error(e)

        handle = self._loop.call_later(max(delay_ms, 0) / 1000.0, run)
        self._handles.add(handle)
        return handle

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Run a coroutine in the background, reporting any failure."""
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.report_error(exc)

    def report_error(self, exc: BaseException) -> None:
        logger.error(f"Unhandled sync error: {exc}", exc_info=exc)
        if self._on_error is not None:
            self._on_error(exc)

    @property
    def pending(self) -> int:
        """Number of armed timers and running tasks."""
        return len(self._handles) + len(self._tasks)

    async def close(self):
        """Cancel armed timers and wait for background tasks to finish."""
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()

        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
