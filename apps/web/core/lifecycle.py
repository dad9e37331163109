"""
View lifecycle - liveness and task ownership for screen controllers.

A controller captures its current scope before every await and checks
``scope.alive`` before writing state, so results that arrive after
teardown (or after the signed-in identity changed) are discarded.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


class ViewScope:
    """Liveness flag plus the asyncio tasks started on behalf of one view."""

    def __init__(self, name: str = "view") -> None:
        self.name = name
        self.alive = True
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        """Start ``coro`` as a task owned by this scope."""
        if not self.alive:
            coro.close()
            raise RuntimeError(f"Scope {self.name} is closed")

        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    def close(self) -> None:
        """Mark the scope dead and cancel everything it still owns."""
        if not self.alive:
            return
        self.alive = False
        for task in list(self._tasks):
            task.cancel()
        logger.debug("Closed scope %s", self.name)

    async def run(self, coro: Coroutine[Any, Any, T]) -> T | None:
        """
        Run ``coro`` as an owned task and wait for it.

        Returns None if the scope was closed before the task finished;
        any other exception from the task propagates.
        """
        task = self.spawn(coro)
        await asyncio.wait({task})
        if task.cancelled():
            return None
        return task.result()
