"""
Caps the number of chunk fetches that may be in flight at once.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

log = logging.getLogger(__name__)


class AdmissionController:
    """
    A fixed pool of admission slots backed by a FIFO semaphore.

    Waiters are served in arrival order, so no task starves while the total
    number of tasks is finite. The controller also tracks how many slots are
    held and the highest value that count has reached.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError(f"Admission limit must be at least 1, got {limit}.")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        """Number of slots currently held."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of slots held at the same time."""
        return self._peak_in_flight

    async def acquire(self) -> None:
        """Waits until a slot is free and takes it."""
        await self._semaphore.acquire()
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)

    def release(self) -> None:
        """Returns a previously acquired slot."""
        if self._in_flight <= 0:
            raise RuntimeError("release() called without a matching acquire().")
        self._in_flight -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def slot(self):
        """Holds one slot for the duration of the block, releasing it on any exit."""
        await self.acquire()
        try:
            yield self
        finally:
            self.release()
