"""Fire-and-forget background work that must outlive the request that spawned it."""

import asyncio
from collections.abc import Coroutine
from typing import Any

from kbchat.core.logging import get_logger

logger = get_logger(__name__)


class BackgroundTaskRunner:
    """Owns side-effect tasks spawned during chat turns.

    Tasks are held until they finish so they are not garbage collected, and
    their outcome is only logged. A failing task never affects the caller.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        """Schedule ``coro`` on the running loop and return immediately."""
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            logger.warning("background_task_cancelled", task=task.get_name())
            return

        error = task.exception()
        if error is not None:
            logger.error(
                "background_task_failed",
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
            )
        else:
            logger.debug("background_task_completed", task=task.get_name())

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight tasks, e.g. on shutdown or in tests."""
        if not self._tasks:
            return

        logger.info("background_tasks_draining", count=len(self._tasks))
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("background_tasks_still_running", count=len(pending))
