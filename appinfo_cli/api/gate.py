"""
A process-wide limit on simultaneous in-flight store API calls.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

log = logging.getLogger(__name__)


class ConcurrencyGate:
    """
    Counting semaphore shared by every caller and priority. Priority never
    bypasses the gate; waiters are woken in arrival order.
    """

    def __init__(self, capacity: int = 5):
        if capacity < 1:
            raise ValueError("Gate capacity must be at least 1.")
        self._capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_flight(self) -> int:
        """Number of permits currently held."""
        return self._in_flight

    @property
    def available(self) -> int:
        return self._capacity - self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of permits held at once since creation."""
        return self._peak_in_flight

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        """Holds one permit for the duration of the block, released on any exit."""
        async with self._semaphore:
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                yield
            finally:
                self._in_flight -= 1
