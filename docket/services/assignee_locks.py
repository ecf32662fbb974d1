"""
Per-assignee critical sections for read-compute-write scheduling.

Two placements for the same assignee must not both read the same free slot,
so every scheduling mutation holds the assignee's lock. Work for different
assignees runs in parallel.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from docket.core.config import get_settings
from docket.core.exceptions import SchedulingLockTimeoutError
from docket.core.logger import setup_logger

logger = setup_logger(__name__)


class AssigneeLockRegistry:
    """
    One asyncio.Lock per assignee, created on first use.

    A lock is dropped once nobody holds or waits for it, so the registry
    only tracks assignees with scheduling work in flight. Locks are
    process-local.
    """

    def __init__(self, timeout_seconds: Optional[float] = None) -> None:
        if timeout_seconds is None:
            timeout_seconds = get_settings().SCHEDULING_LOCK_TIMEOUT_SECONDS
        self.timeout_seconds = timeout_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @property
    def tracked_assignees(self) -> int:
        return len(self._locks)

    def _checkout(self, assignee_id: str) -> asyncio.Lock:
        lock = self._locks.setdefault(assignee_id, asyncio.Lock())
        self._users[assignee_id] = self._users.get(assignee_id, 0) + 1
        return lock

    def _checkin(self, assignee_id: str) -> None:
        remaining = self._users[assignee_id] - 1
        if remaining:
            self._users[assignee_id] = remaining
            return
        del self._users[assignee_id]
        del self._locks[assignee_id]

    def is_locked(self, assignee_id: str) -> bool:
        lock = self._locks.get(assignee_id)
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def hold(self, assignee_id: str) -> AsyncIterator[None]:
        """
        Hold the assignee's lock for the duration of the block.

        Raises:
            SchedulingLockTimeoutError: If the lock is not acquired in time
        """
        lock = self._checkout(assignee_id)
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.timeout_seconds)
            except asyncio.TimeoutError as e:
                logger.warning(
                    f"Scheduling lock timeout for assignee {assignee_id} after {self.timeout_seconds}s"
                )
                raise SchedulingLockTimeoutError(assignee_id, self.timeout_seconds) from e
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(assignee_id)
