"""Keyed asyncio mutex.

One in-flight critical section per key; callers on the same key queue up in
request order, callers on different keys never wait on each other.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Dict, Optional, TypeVar

from git_worktree_keeper.exceptions import LockTimeoutError
from git_worktree_keeper.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class KeyedMutex:
    """Map of string keys to asyncio locks, created lazily and evicted when idle."""

    def __init__(self, default_timeout: Optional[float] = None):
        """Initialize the mutex.

        Args:
            default_timeout: Seconds to wait for a key before raising
                LockTimeoutError. None waits forever.
        """
        self.default_timeout = default_timeout
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}  # holders + waiters per key

    def is_locked(self, key: str) -> bool:
        """Return True while a critical section for key is running."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def pending(self, key: str) -> int:
        """Number of callers holding or waiting for key."""
        return self._users.get(key, 0)

    def active_keys(self) -> list[str]:
        return list(self._locks)

    @asynccontextmanager
    async def hold(self, key: str, timeout: Optional[float] = None):
        """Hold key for the duration of the async with block.

        Release happens whether the block returns or raises.
        """
        if timeout is None:
            timeout = self.default_timeout

        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._users[key] = self._users.get(key, 0) + 1

        try:
            if lock.locked():
                logger.debug(f"Waiting for lock {key}")
            try:
                if timeout is None:
                    await lock.acquire()
                else:
                    await asyncio.wait_for(lock.acquire(), timeout)
            except asyncio.TimeoutError:
                raise LockTimeoutError(key, timeout) from None

            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    async def run(
        self, key: str, func: Callable[[], Awaitable[T]], timeout: Optional[float] = None
    ) -> T:
        """Run func() under key and return its result."""
        async with self.hold(key, timeout):
            return await func()
