"""
Per-activator booking lock.

Conflict check and insert run in one transaction, but two requests for the
same activator can still both pass the check before either commits. When
Redis is configured, bookings for one activator are serialized through a
short-lived Redis lock; without Redis the lock is a no-op.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import LockError

from .errors import SlotConflict

logger = logging.getLogger(__name__)


class BookingLock:
    """Serializes slot bookings per activator."""

    KEY_PREFIX = "booking-lock"

    def __init__(self, redis: Optional[Redis] = None, timeout: int = 15) -> None:
        self.redis = redis
        self.timeout = timeout

    def key(self, activator_user_id: UUID) -> str:
        return f"{self.KEY_PREFIX}:{activator_user_id}"

    @asynccontextmanager
    async def hold(self, activator_user_id: UUID) -> AsyncIterator[None]:
        if self.redis is None:
            yield
            return

        lock = self.redis.lock(
            self.key(activator_user_id),
            timeout=self.timeout,
            blocking_timeout=self.timeout,
        )
        acquired = await lock.acquire()
        if not acquired:
            raise SlotConflict("Another booking for this activator is in progress, try again")

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockError as e:
                # Lock expired while the booking was still running
                logger.warning("Booking lock for %s was not held on release: %s", activator_user_id, e)
