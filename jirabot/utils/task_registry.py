"""
Task registry for fire-and-forget asyncio tasks.

The event loop only keeps weak references to tasks, so anything launched
without being awaited has to be held somewhere. The registry holds those
tasks and hands the exception of any task that fails to the loop's
exception handler, which is where the process-wide safety net lives.
"""

import asyncio
from typing import Coroutine, Optional, Set

from .logging import logger


class TaskRegistry:
    """Registry for tracking fire-and-forget tasks."""

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def spawn(
        self,
        coro: Coroutine,
        name: str,
        loop: Optional[asyncio.AbstractEventLoop] = None
    ) -> asyncio.Task:
        """Schedule a coroutine as a tracked task.

        Args:
            coro: The coroutine to run.
            name: Task name, shown in logs and in fatal records.
            loop: Loop to schedule on. Defaults to the running loop.

        Returns:
            The created task. Callers are not expected to await it.
        """
        if loop is None:
            loop = asyncio.get_running_loop()
        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug(f"Spawned task {name}")
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug(f"Task {task.get_name()} was cancelled")
            return

        exc = task.exception()
        if exc is None:
            logger.debug(f"Task {task.get_name()} finished")
            return

        # Retrieving the exception above stops asyncio from reporting it again
        # at garbage collection, so the handler sees it exactly once.
        task.get_loop().call_exception_handler({
            "message": f"Unhandled exception in task {task.get_name()}",
            "exception": exc,
            "task": task,
        })

    @property
    def active_count(self) -> int:
        """Return the number of tasks still running."""
        return len(self._tasks)


# Global singleton instance
_task_registry: Optional[TaskRegistry] = None


def get_task_registry() -> TaskRegistry:
    """Get or create the global task registry."""
    global _task_registry
    if _task_registry is None:
        _task_registry = TaskRegistry()
    return _task_registry
