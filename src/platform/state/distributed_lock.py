"""
Distributed Lock using Redis

Simple distributed lock implementation using Redis SET NX EX command.
Guards the purchase path so that two worker processes never drive a
checkout at the same time.
"""

from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError
import uuid_utils as uuid

from src.platform.logging.loguru_io import Logger


_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class DistributedLock:
    def __init__(self, *, client: Redis, key: str, ttl: int) -> None:
        self.client = client
        self.key = key
        self.ttl = ttl
        self.lock_value: Optional[str] = None

    async def acquire_lock(self) -> bool:
        """
        Returns:
            True if lock acquired, False if another holder owns it
        """
        self.lock_value = str(uuid.uuid7())  # Unique value for ownership verification

        # NX: only set if not exists (atomic), EX: expiry in seconds
        result = await self.client.set(self.key, self.lock_value, nx=True, ex=self.ttl)

        if result:
            Logger.base.debug(f'🔒 [LOCK] Acquired lock: {self.key} (ttl={self.ttl}s)')
            return True

        Logger.base.debug(f'⏳ [LOCK] Failed to acquire lock: {self.key} (already locked)')
        self.lock_value = None
        return False

    async def release_lock(self) -> bool:
        """Release only a lock we still own (ownership check in Lua)."""
        if not self.lock_value:
            Logger.base.warning(f'⚠️ [LOCK] No lock value to release: {self.key}')
            return False

        try:
            result = await self.client.eval(_RELEASE_SCRIPT, 1, self.key, self.lock_value)  # type: ignore

            if result:
                Logger.base.debug(f'🔓 [LOCK] Released lock: {self.key}')
                return True

            Logger.base.warning(
                f'⚠️ [LOCK] Failed to release lock: {self.key} (ownership mismatch or expired)'
            )
            return False

        except RedisError as e:
            # TTL bounds how long a lost release can block the next purchase
            Logger.base.error(f'❌ [LOCK] Error releasing lock {self.key}: {e}')
            return False
        finally:
            self.lock_value = None
