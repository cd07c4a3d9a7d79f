"""Cancellation scope for the asynchronous work of one conversation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConversationScope:
    """
    Tracks every task spawned on behalf of a conversation.

    `cancel_all()` cancels whatever is still running and bumps `generation`,
    so code that resumes after a reset can tell its results are stale.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self.generation = 0

    def spawn(
        self, coro: Coroutine[Any, Any, T], name: str | None = None
    ) -> asyncio.Task[T]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def active(self) -> int:
        return len(self._tasks)

    async def cancel_all(self) -> None:
        self.generation += 1
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d in-flight conversation task(s)", len(tasks))

    async def join(self) -> None:
        """Wait for every outstanding task; failures are left to the tasks."""
        while pending := [t for t in self._tasks if not t.done()]:
            await asyncio.gather(*pending, return_exceptions=True)
