import asyncio
from collections.abc import Awaitable, Callable


class Debouncer:
    """
    Run an async callback once input has been quiet for ``delay`` seconds.

    Each ``trigger`` restarts the quiet period. Only the waiting phase is
    cancellable: once the callback has started it runs to completion, and
    superseded results are discarded by the caller instead.
    """

    def __init__(self, delay: float):
        self.delay = delay
        self._waiting: asyncio.Task | None = None
        self._running: set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._waiting is not None and not self._waiting.done()

    def trigger(self, callback: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._waiting = asyncio.get_running_loop().create_task(self._wait_then_run(callback))

    def cancel(self) -> None:
        if self.pending:
            self._waiting.cancel()
        self._waiting = None

    async def _wait_then_run(self, callback: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(self.delay)
        task = asyncio.current_task()
        self._waiting = None
        self._running.add(task)
        try:
            await callback()
        finally:
            self._running.discard(task)

    async def wait(self) -> None:
        """Wait for the pending call (if any) and every started call to finish."""
        while self.pending or self._running:
            tasks = [t for t in (self._waiting, *self._running) if t is not None]
            await asyncio.gather(*tasks, return_exceptions=True)
