"""
Redis-backed mutual exclusion shared by web and Celery workers.

Upload sessions are written by whichever gunicorn or Celery process handles
the request, so an in-process mutex is not enough. A lock is a Redis key
``lock:<name>`` set with ``NX`` and a TTL; its value is a random token and
only the holder of that token can delete or refresh it.

    with DistributedLock(f"upload_session:{session_id}", ttl=120) as lock:
        ...
        lock.extend()  # before a slow step

If the TTL lapses the key simply expires. A holder that overran its TTL
finds the key gone (or re-taken) at release time; that is logged, not raised.
An unreachable Redis surfaces as LockServiceError when taking or refreshing
a lock.
"""

from __future__ import annotations

import logging
import time
import uuid as uuid_module
from typing import TYPE_CHECKING

from django_redis import get_redis_connection
from redis.exceptions import RedisError

from core.exceptions import LockAcquisitionError, LockServiceError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis

logger = logging.getLogger(__name__)

# Delete the key only if it still carries our token
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

# Reset the TTL only if the key still carries our token
EXTEND_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("expire", KEYS[1], ARGV[2])
end
return 0
"""


class DistributedLock:
    """
    Token-owned Redis lock with a TTL.

    Args:
        key: Lock name; stored under "lock:<key>"
        ttl: Seconds until Redis drops the key on its own
        blocking: Poll until acquired (True) or fail at once (False)
        timeout: Polling budget in seconds when blocking
        alias: django-redis connection alias
    """

    poll_interval = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
        alias: str = "default",
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self.alias = alias
        self._token: str | None = None
        self._redis: Redis | None = None

    @property
    def redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection(self.alias)
        return self._redis

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def acquire(self) -> bool:
        """
        Take the lock.

        Raises:
            LockAcquisitionError: The key is held and either blocking is off
                or the timeout ran out.
            LockServiceError: Redis is unreachable.
        """
        token = uuid_module.uuid4().hex
        deadline = time.monotonic() + self.timeout

        while not self._set(token):
            if not self.blocking:
                raise LockAcquisitionError(
                    f"Lock '{self.key}' is already held",
                    details={"key": self.key},
                )
            if time.monotonic() >= deadline:
                raise LockAcquisitionError(
                    f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                    details={"key": self.key, "timeout": self.timeout},
                )
            time.sleep(self.poll_interval)

        self._token = token
        return True

    def _set(self, token: str) -> bool:
        try:
            return bool(self.redis.set(self.key, token, nx=True, ex=self.ttl))
        except RedisError as exc:
            raise LockServiceError(
                "Lock service is unavailable",
                details={"key": self.key},
            ) from exc

    def release(self) -> bool:
        """
        Give the lock back. Returns False if it was not ours anymore.

        A Redis failure here is logged, not raised: the work under the lock
        is already done and the key expires with its TTL.
        """
        if self._token is None:
            return False

        token, self._token = self._token, None
        try:
            released = bool(self.redis.eval(RELEASE_SCRIPT, 1, self.key, token))
        except RedisError:
            logger.warning(
                f"Could not release lock {self.key}; it expires in {self.ttl}s",
                exc_info=True,
                extra={"event_type": "lock_release_failed", "key": self.key},
            )
            return False
        if not released:
            logger.warning(
                f"Lock {self.key} expired before release",
                extra={"event_type": "lock_expired", "key": self.key},
            )
        return released

    def extend(self, ttl: int | None = None) -> bool:
        """
        Restart the TTL countdown (ttl defaults to the original one).

        Returns False when the lock is no longer ours.

        Raises:
            LockServiceError: Redis is unreachable.
        """
        if self._token is None:
            return False
        try:
            return bool(
                self.redis.eval(EXTEND_SCRIPT, 1, self.key, self._token, ttl or self.ttl)
            )
        except RedisError as exc:
            raise LockServiceError(
                "Lock service is unavailable",
                details={"key": self.key},
            ) from exc

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


__all__ = ["DistributedLock"]
