"""
Async Hygiene Tools
Timeouts, loop draining and a manual clock for driving timers deterministically.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Awaitable, List, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class AsyncTimeoutError(Exception):
    """Raised when an async operation times out."""
    pass


async def timeout(awaitable: Awaitable[T], seconds: float) -> T:
    """
    Add a timeout to an awaitable.

    Args:
        awaitable: The coroutine to timeout
        seconds: Timeout in seconds

    Returns:
        The result of the awaitable

    Raises:
        AsyncTimeoutError: If the operation times out
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except asyncio.TimeoutError:
        raise AsyncTimeoutError(f"Operation timed out after {seconds}s")


async def drain_loop(iterations: int = 50) -> None:
    """Yield to the event loop repeatedly so ready callbacks and tasks run."""
    for _ in range(iterations):
        await asyncio.sleep(0)


class ManualClock:
    """A clock whose time only moves when advanced.

    ``sleep`` parks the caller until ``advance`` moves time past its deadline,
    so retry and poll timers can be driven step by step.
    """

    def __init__(self, start_time: float = 1_700_000_000.0):
        self._time = start_time
        self._sleepers: List[Tuple[float, int, asyncio.Future]] = []
        self._seq = itertools.count()

    def time(self) -> float:
        """Get current time."""
        return self._time

    async def sleep(self, seconds: float) -> None:
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._sleepers, (self._time + max(seconds, 0.0), next(self._seq), future))
        await future

    @property
    def pending_sleepers(self) -> int:
        """Number of sleepers still waiting (cancelled ones excluded)."""
        return sum(1 for _, _, future in self._sleepers if not future.done())

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking every sleeper whose deadline is reached in order."""
        target = self._time + seconds
        await drain_loop()
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, future = heapq.heappop(self._sleepers)
            if future.done():
                continue
            self._time = max(self._time, deadline)
            future.set_result(None)
            await drain_loop()
        self._time = target
        await drain_loop()


class WallClock:
    """Real time, real sleeps."""

    def time(self) -> float:
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
