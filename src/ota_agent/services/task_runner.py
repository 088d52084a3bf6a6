"""Bounded background task runner and per-module exclusion locks."""

import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import AsyncIterator, Awaitable, Callable, Optional

# Worker slot held by the task currently running under a TaskRunner
_worker_slot: ContextVar[Optional[asyncio.Semaphore]] = ContextVar(
    "ota_agent_worker_slot", default=None
)


class ModuleLocks:
    """Map from module name to the lock serializing its upgrade attempts.

    A runner task that has to wait for a busy module gives its worker slot
    back while it waits and takes one again before continuing, so queued
    attempts for one module do not hold up other work.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, module: str) -> asyncio.Lock:
        lock = self._locks.get(module)
        if lock is None:
            lock = self._locks[module] = asyncio.Lock()
        return lock

    def is_busy(self, module: str) -> bool:
        lock = self._locks.get(module)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, module: str) -> AsyncIterator[None]:
        """Hold the lock for ``module`` for the duration of the block."""
        lock = self.get(module)
        slot = _worker_slot.get()
        if slot is None or not lock.locked():
            await lock.acquire()
        else:
            # The runner releases the slot when the task ends, so it is
            # always taken back before leaving, even on cancellation.
            slot.release()
            try:
                await lock.acquire()
            except BaseException:
                await asyncio.shield(slot.acquire())
                raise
            try:
                await asyncio.shield(slot.acquire())
            except BaseException:
                lock.release()
                raise
        try:
            yield
        finally:
            lock.release()


class TaskRunner:
    """Runs listener callbacks off the inbound event path.

    At most ``max_workers`` callbacks run at once; the rest wait for a slot.
    A callback blocked in :meth:`ModuleLocks.hold` does not count against the
    limit while it waits. Callers never await the submitted work.
    """

    def __init__(self, max_workers: int = 4):
        """Initialize task runner.

        Args:
            max_workers: Maximum number of callbacks running concurrently
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.logger = logging.getLogger("ota_agent.task_runner")
        self.max_workers = max_workers
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def submit(self, name: str, work: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """Schedule ``work()`` and return immediately.

        Args:
            name: Task name used in logs
            work: Zero-argument coroutine function

        Returns:
            The scheduled task
        """
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_workers)
        task = asyncio.get_running_loop().create_task(self._run(name, work), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self.logger.debug(f"Submitted task {name} ({len(self._tasks)} in flight)")
        return task

    async def _run(self, name: str, work: Callable[[], Awaitable[None]]) -> None:
        async with self._semaphore:
            token = _worker_slot.set(self._semaphore)
            try:
                await work()
            except asyncio.CancelledError:
                self.logger.warning(f"Task {name} cancelled")
                raise
            except Exception as e:
                self.logger.error(f"Task {name} failed: {e}", exc_info=True)
            finally:
                _worker_slot.reset(token)

    async def drain(self) -> None:
        """Wait until every submitted task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel pending tasks and wait for them to unwind."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.logger.info(f"Task runner stopped ({len(tasks)} tasks cancelled)")
