"""Debounce helper for search-as-you-type."""

import asyncio
import inspect
from typing import Any, Callable, Optional

SEARCH_DEBOUNCE_SECONDS = 0.18


class Debouncer:
    """
    Delay calls to func until no new call has arrived for delay_seconds.
    Each call cancels the pending one; only the last arguments are used.
    """

    def __init__(self, func: Callable[..., Any], delay_seconds: float = SEARCH_DEBOUNCE_SECONDS):
        self.func = func
        self.delay_seconds = delay_seconds
        self._task: Optional[asyncio.Task] = None

    def __call__(self, *args, **kwargs) -> asyncio.Task:
        self.cancel()
        self._task = asyncio.create_task(self._run_after_delay(args, kwargs))
        return self._task

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        if self.pending:
            self._task.cancel()
        self._task = None

    async def _run_after_delay(self, args, kwargs):
        await asyncio.sleep(self.delay_seconds)
        result = self.func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result
