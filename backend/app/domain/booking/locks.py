"""
Per-vehicle booking locks.

Serializes the check-then-insert section of booking creation for one
vehicle. ``MemoryBookingLocks`` covers a single process; ``RedisBookingLocks``
covers every instance sharing the Redis server. Either way the vehicle's
booking version is still checked at insert time.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.exceptions import LockError

from backend.app.core.config import Settings

logger = logging.getLogger("fleetlink.locks")


class BookingLockTimeoutError(Exception):
    """Raised when a vehicle's booking lock could not be acquired in time."""

    def __init__(self, vehicle_id: int, wait_seconds: float):
        self.vehicle_id = vehicle_id
        self.wait_seconds = wait_seconds
        super().__init__(f"Timed out after {wait_seconds}s waiting for booking lock on vehicle {vehicle_id}")


class BookingLocks(ABC):

    @abstractmethod
    def hold(self, vehicle_id: int):
        """Async context manager holding the lock for ``vehicle_id``."""
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryBookingLocks(BookingLocks):
    """
    asyncio locks keyed by vehicle id.

    Entries are dropped once no coroutine holds or waits on them.
    """

    def __init__(self, wait_seconds: float = 5.0):
        self.wait_seconds = wait_seconds
        self._locks: dict[int, asyncio.Lock] = {}
        self._users: dict[int, int] = {}

    @asynccontextmanager
    async def hold(self, vehicle_id: int) -> AsyncIterator[None]:
        lock = self._locks.setdefault(vehicle_id, asyncio.Lock())
        self._users[vehicle_id] = self._users.get(vehicle_id, 0) + 1
        try:
            try:
                async with asyncio.timeout(self.wait_seconds):
                    await lock.acquire()
            except TimeoutError:
                raise BookingLockTimeoutError(vehicle_id, self.wait_seconds)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[vehicle_id] -= 1
            if self._users[vehicle_id] == 0:
                del self._users[vehicle_id]
                del self._locks[vehicle_id]

    def __len__(self) -> int:
        return len(self._locks)


class RedisBookingLocks(BookingLocks):
    """
    Redis locks keyed by vehicle id, via redis-py's ``Lock``.

    ``ttl_seconds`` bounds how long a crashed holder can block a vehicle.
    """

    key_prefix = "fleetlink:booking-lock:vehicle:"

    def __init__(self, client, ttl_seconds: float = 10.0, wait_seconds: float = 5.0):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.wait_seconds = wait_seconds

    def key_for(self, vehicle_id: int) -> str:
        return f"{self.key_prefix}{vehicle_id}"

    @asynccontextmanager
    async def hold(self, vehicle_id: int) -> AsyncIterator[None]:
        lock = self.client.lock(
            self.key_for(vehicle_id),
            timeout=self.ttl_seconds,
            blocking_timeout=self.wait_seconds,
        )
        acquired = await lock.acquire()
        if not acquired:
            raise BookingLockTimeoutError(vehicle_id, self.wait_seconds)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError:
                # TTL ran out while held; the version check still guards the insert
                logger.warning("Booking lock for vehicle %s expired before release", vehicle_id)

    async def close(self) -> None:
        await self.client.aclose()


def create_booking_locks(settings: Settings) -> BookingLocks:
    """Build the lock manager selected by ``settings.booking_lock_backend``."""
    backend = settings.booking_lock_backend.lower()

    if backend == "memory":
        return MemoryBookingLocks(wait_seconds=settings.booking_lock_wait_seconds)

    if backend == "redis":
        from backend.app.core.redis_client import redis_client
        return RedisBookingLocks(
            redis_client,
            ttl_seconds=settings.booking_lock_ttl_seconds,
            wait_seconds=settings.booking_lock_wait_seconds,
        )

    raise ValueError(f"Unknown booking lock backend: {settings.booking_lock_backend}")
