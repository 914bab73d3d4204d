"""
Fire-and-forget task runner for the map session.

Side effects such as point awards and image analysis are spawned as asyncio
tasks that the critical path never awaits. Failures are captured by a done
callback, logged and handed to an error handler.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Coroutine, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[BaseException], None]


class BackgroundTasks:
    """
    Tracks spawned tasks and reports their failures.

    Strong references are kept until a task finishes so the event loop
    cannot garbage-collect it mid-flight.
    """

    def __init__(self, on_error: Optional[ErrorHandler] = None):
        """
        Args:
            on_error: Default handler for tasks spawned without their own
        """
        self.on_error = on_error
        self.failures: List[Tuple[str, BaseException]] = []
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of tasks still running."""
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        name: str,
        on_error: Optional[ErrorHandler] = None
    ) -> asyncio.Task:
        """
        Schedule a coroutine without awaiting it.

        Args:
            coro: Coroutine to run
            name: Task name used in logs
            on_error: Handler called with the exception if the task fails

        Returns:
            The scheduled task

        Raises:
            RuntimeError: if no event loop is running in this thread
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise

        task = loop.create_task(coro)
        task.set_name(name)
        self._tasks.add(task)
        task.add_done_callback(partial(self._finished, on_error=on_error))
        logger.debug(f"Spawned background task {name}")
        return task

    def _finished(self, task: asyncio.Task, on_error: Optional[ErrorHandler]) -> None:
        self._tasks.discard(task)

        if task.cancelled():
            logger.warning(f"Background task {task.get_name()} was cancelled")
            return

        exc = task.exception()
        if exc is None:
            return

        logger.error(f"Background task {task.get_name()} failed: {exc}")
        self.failures.append((task.get_name(), exc))

        handler = on_error or self.on_error
        if handler is not None:
            handler(exc)

    async def drain(self) -> None:
        """Wait until every spawned task (including ones spawned meanwhile) is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
