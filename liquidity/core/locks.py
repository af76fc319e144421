"""
Pool-level mutual exclusion for capital-affecting operations
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

from liquidity.core.config import settings
from liquidity.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


class PoolLockRegistry:
    """One asyncio lock per pool; acquisition is bounded by a timeout."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, pool: str) -> asyncio.Lock:
        lock = self._locks.get(pool)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[pool] = lock
        return lock

    def is_locked(self, pool: str) -> bool:
        lock = self._locks.get(pool)
        return bool(lock and lock.locked())

    @asynccontextmanager
    async def acquire(self, pool: str):
        timeout = self.timeout if self.timeout is not None else settings.POOL_LOCK_TIMEOUT_SECONDS
        lock = self._lock_for(pool)
        try:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out after {timeout}s waiting for pool lock {pool}")
            raise ConflictError(pool, f"pool busy, lock not acquired within {timeout}s")
        try:
            yield
        finally:
            lock.release()
