"""Background tasks bound to the lifetime of their owner (a view or a service).

Closing a scope cancels whatever is still running and flips ``is_active`` so
late results can be discarded instead of being written into dead state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)

CompletionSink = Callable[[str, "BaseException | None"], None]


def log_completion(name: str, error: BaseException | None) -> None:
    if error is None:
        logger.debug("Background task %s finished", name)
    else:
        logger.error("Background task %s failed", name, exc_info=error)


class TaskScope:
    def __init__(self, name: str = "scope", on_complete: CompletionSink | None = None) -> None:
        self.name = name
        self._on_complete = on_complete or log_completion
        self._tasks: set[asyncio.Task[Any]] = set()
        self._active = True

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def spawn(self, coroutine: Coroutine[Any, Any, Any], name: str) -> asyncio.Task[Any]:
        if not self._active:
            coroutine.close()
            raise RuntimeError(f"Task scope '{self.name}' is closed.")
        task = asyncio.get_running_loop().create_task(coroutine, name=f"{self.name}:{name}")
        self._tasks.add(task)
        task.add_done_callback(lambda finished: self._finish(name, finished))
        return task

    def close(self) -> None:
        self._active = False
        for task in list(self._tasks):
            task.cancel()

    async def drain(self) -> None:
        """Wait until every spawned task (including ones spawned meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _finish(self, name: str, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Background task %s cancelled", name)
            return
        self._on_complete(name, task.exception())
