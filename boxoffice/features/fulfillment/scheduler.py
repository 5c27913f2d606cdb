"""Bounded fire-and-forget scheduler for post-acknowledgment work"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Set

logger = logging.getLogger(__name__)


class BackgroundDispatcher:
    """
    Runs webhook processing after the HTTP response is sent.

    submit() never blocks the caller: the task is created immediately and
    waits on a semaphore for a run slot. Failures are logged here, in one
    place, and in-flight work can be drained on shutdown.
    """

    def __init__(self, max_concurrency: int = 10):
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._tasks: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, func: Callable[..., Awaitable[Any]], *args: Any, name: str = "webhook-job") -> asyncio.Task:
        task = asyncio.create_task(self._run(func, *args), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def _run(self, func: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        async with self._semaphore:
            return await func(*args)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning(f"BackgroundDispatcher: Job {task.get_name()} was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"BackgroundDispatcher: Unhandled error in job {task.get_name()}: {error}",
                exc_info=(type(error), error, error.__traceback__),
            )

    async def drain(self, timeout: float = 25.0) -> None:
        """Wait for in-flight jobs; cancel whatever is still running after timeout"""
        if not self._tasks:
            return

        pending = set(self._tasks)
        logger.info(f"BackgroundDispatcher: Draining {len(pending)} in-flight job(s)")
        _, still_running = await asyncio.wait(pending, timeout=timeout)

        for task in still_running:
            logger.error(f"BackgroundDispatcher: Job {task.get_name()} still running at shutdown, cancelling")
            task.cancel()
        if still_running:
            await asyncio.gather(*still_running, return_exceptions=True)
