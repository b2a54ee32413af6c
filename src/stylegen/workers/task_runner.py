"""Bounded in-process task runner for fire-and-forget orchestrator runs.

Entry points (upload, admin regenerate, sweep) submit work here instead of
spawning untracked tasks. The runner bounds concurrency, caps the number of
pending tasks, and drops a submission whose key is already in flight.
"""

import asyncio
from typing import Any, Awaitable, Callable, Hashable

import structlog

logger = structlog.get_logger(__name__)


class BoundedTaskRunner:
    """Runs coroutines with a concurrency limit and per-key deduplication."""

    def __init__(self, max_concurrency: int = 4, max_pending: int = 100):
        """Initialize task runner.

        Args:
            max_concurrency: Maximum number of tasks running at the same time
            max_pending: Maximum number of tracked tasks (running + waiting)
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if max_pending < max_concurrency:
            raise ValueError("max_pending must be at least max_concurrency")

        self.max_concurrency = max_concurrency
        self.max_pending = max_pending
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: dict[Hashable, asyncio.Task] = {}

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    @property
    def available_slots(self) -> int:
        """Number of submissions the runner would still accept."""
        return max(self.max_pending - len(self._tasks), 0)

    def is_running(self, key: Hashable) -> bool:
        return key in self._tasks

    def submit(self, key: Hashable, coro_factory: Callable[[], Awaitable[Any]]) -> bool:
        """Schedule a task unless one with the same key is already tracked.

        Must be called from within a running event loop.

        Args:
            key: Deduplication key (e.g., the job id)
            coro_factory: Zero-argument callable returning the coroutine to run

        Returns:
            True if the task was scheduled, False if deduplicated or the runner is full
        """
        if key in self._tasks:
            logger.info("task.deduplicated", key=str(key))
            return False

        if len(self._tasks) >= self.max_pending:
            logger.warning("task.rejected", key=str(key), pending=len(self._tasks))
            return False

        task = asyncio.create_task(self._run(key, coro_factory))
        self._tasks[key] = task
        task.add_done_callback(lambda _: self._tasks.pop(key, None))
        logger.debug("task.submitted", key=str(key), pending=len(self._tasks))
        return True

    async def _run(self, key: Hashable, coro_factory: Callable[[], Awaitable[Any]]) -> Any:
        async with self._semaphore:
            try:
                result = await coro_factory()
            except asyncio.CancelledError:
                logger.info("task.cancelled", key=str(key))
                raise
            except Exception as e:
                logger.error(
                    "task.failed",
                    key=str(key),
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                return None

        logger.info("task.succeeded", key=str(key))
        return result

    async def drain(self) -> None:
        """Wait until every tracked task (including ones submitted meanwhile) finishes."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel all tracked tasks and wait for them to finish."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("task_runner.shutdown", cancelled=len(tasks))
