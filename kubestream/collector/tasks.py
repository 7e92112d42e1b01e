"""Completion tracking for every watcher and stream worker task."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Any


class TaskTracker:
    """Owns a set of background tasks so shutdown can wait for all of them.

    Finished tasks drop out of the set on their own. ``wait()`` keeps
    waiting until the set is empty, including tasks spawned while it waits.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait(self) -> None:
        while True:
            pending = [task for task in self._tasks if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def __len__(self) -> int:
        return len(self._tasks)
