# deapl/services/task_queue.py
"""
FIFO admission queue with an adjustable concurrency limit.

Tasks are coroutine factories. At most `concurrency` of them run at once;
the rest wait in submission order. Queue depth is unbounded unless
max_queue_size is set, in which case extra submissions are rejected.
"""

import asyncio
import logging
from collections import deque
from typing import Awaitable, Callable, Optional, TypeVar

from deapl.services.exceptions import QueueFullError

# Module logger
logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskQueue:
    """Bounded-concurrency FIFO queue for async tasks."""

    def __init__(self, concurrency: int = 1, max_queue_size: Optional[int] = None):
        self._concurrency = self._validate_concurrency(concurrency)
        if max_queue_size is not None and max_queue_size < 1:
            raise ValueError(f"max_queue_size must be >= 1, got {max_queue_size!r}")
        self._max_queue_size = max_queue_size
        self._waiters: deque[asyncio.Future] = deque()
        self._running = 0
        self._max_observed_running = 0
        self._idle: Optional[asyncio.Event] = None

    @staticmethod
    def _validate_concurrency(value: int) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValueError(f"concurrency must be an integer >= 1, got {value!r}")
        return value

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @concurrency.setter
    def concurrency(self, value: int) -> None:
        self.set_concurrency(value)

    def set_concurrency(self, value: int) -> None:
        """
        Change the limit for tasks admitted from now on.

        Running tasks are unaffected; raising the limit admits waiters at once.
        """
        self._concurrency = self._validate_concurrency(value)
        logger.info("Task queue concurrency set to %d", value)
        self._wake_waiters()

    @property
    def running(self) -> int:
        return self._running

    @property
    def pending(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    @property
    def max_observed_running(self) -> int:
        """Highest number of tasks that ran at the same time"""
        return self._max_observed_running

    def _wake_waiters(self) -> None:
        # Hand free slots to waiters in FIFO order
        while self._waiters and self._running < self._concurrency:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            self._running += 1
            waiter.set_result(None)

    async def _acquire(self) -> None:
        if self._running < self._concurrency and not self._waiters:
            self._running += 1
            return

        if self._max_queue_size is not None and self.pending >= self._max_queue_size:
            raise QueueFullError(f"Task queue is full ({self._max_queue_size} waiting)")

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug("Task queued (%d waiting, %d running)", self.pending, self._running)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # Slot was granted just before cancellation; pass it on
                self._release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def _release(self) -> None:
        self._running -= 1
        self._wake_waiters()
        if self._idle is not None and self._running == 0 and not self.pending:
            self._idle.set()

    async def submit(self, task_factory: Callable[[], Awaitable[T]]) -> T:
        """
        Run a task once a slot is free and return its result.

        Args:
            task_factory: Zero-argument callable returning an awaitable

        Raises:
            QueueFullError: If max_queue_size waiters are already queued
            Exception raised by the task
        """
        await self._acquire()
        self._max_observed_running = max(self._max_observed_running, self._running)
        try:
            return await task_factory()
        finally:
            self._release()

    async def join(self) -> None:
        """Wait until no task is running or waiting."""
        while self._running or self.pending:
            if self._idle is None or self._idle.is_set():
                self._idle = asyncio.Event()
            await self._idle.wait()
