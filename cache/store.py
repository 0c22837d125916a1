"""
cache/store.py -- Per-user task list cache with a pass-through fallback.

Two implementations of the TaskCache interface:

  RedisTaskCache -- JSON snapshots of a user's task list stored under
      `tasks:<user_id>` with a TTL (default 300 seconds). Any RedisError at
      runtime is logged and reported as a miss (get) or ignored (set/delete).
      After a connection failure Redis is bypassed for a cooldown interval.

  NullTaskCache -- always a miss; writes and invalidations are no-ops. Used
      when REDIS_URL is unset or Redis is unreachable at startup.

connect_cache() picks one at startup. Callers (tasks/service.py) only ever
see the TaskCache interface and never branch on which backend is live.

Usage:
    cache = connect_cache(get_settings())
    snapshot = cache.get(user_id)          # list[dict] or None
    cache.set(user_id, [t.to_dict() for t in tasks])
    cache.invalidate(user_id)
"""

from __future__ import annotations

import json
import logging
import time
from typing import Optional, Protocol

from redis import Redis
from redis.backoff import ExponentialBackoff, NoBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.retry import Retry

from core.config import Settings

logger = logging.getLogger("taskboard.cache")

_DEFAULT_TTL = 300  # 5 minutes in seconds
_DEFAULT_RETRY_INTERVAL = 30.0
_KEY_PREFIX = "tasks"

# Bounded exponential backoff between reconnect attempts.
_BACKOFF_BASE = 0.1
_BACKOFF_CAP = 3.0


def task_list_key(user_id: int) -> str:
    return f"{_KEY_PREFIX}:{user_id}"


class TaskCache(Protocol):
    """Capability interface for the per-user task list cache."""

    backend: str

    def get(self, user_id: int) -> Optional[list[dict]]: ...

    def set(self, user_id: int, tasks: list[dict]) -> None: ...

    def invalidate(self, user_id: int) -> None: ...

    def ping(self) -> bool: ...

    def close(self) -> None: ...


class NullTaskCache:
    """Pass-through cache: every read misses, every write is dropped."""

    backend = "disabled"

    def get(self, user_id: int) -> Optional[list[dict]]:
        return None

    def set(self, user_id: int, tasks: list[dict]) -> None:
        return None

    def invalidate(self, user_id: int) -> None:
        return None

    def ping(self) -> bool:
        return False

    def close(self) -> None:
        return None


class RedisTaskCache:
    """Redis-backed TaskCache. Never raises RedisError to the caller.

    A connection or timeout error puts the cache in pass-through mode for
    retry_interval seconds, so an outage costs one failed command per
    interval instead of one per request. The next call after the interval
    goes to Redis again, first deleting any snapshot whose invalidation was
    skipped in the meantime.
    """

    backend = "redis"

    def __init__(
        self,
        client: Redis,
        ttl: int = _DEFAULT_TTL,
        retry_interval: float = _DEFAULT_RETRY_INTERVAL,
    ) -> None:
        self._client = client
        self.ttl = ttl
        self.retry_interval = retry_interval
        self._bypass_until = 0.0
        # Users whose invalidation never reached Redis. Their snapshots are
        # deleted before any other command once Redis answers again.
        self._stale: set[int] = set()

    @property
    def available(self) -> bool:
        return time.monotonic() >= self._bypass_until

    def _execute(self, op: str, fn, *args, **kwargs) -> tuple[bool, object]:
        """Run one client command and return (ok, result). Never raises RedisError."""
        try:
            return True, fn(*args, **kwargs)
        except (RedisConnectionError, RedisTimeoutError) as e:
            self._bypass_until = time.monotonic() + self.retry_interval
            logger.warning("Redis %s failed, bypassing cache for %.0fs: %s", op, self.retry_interval, e)
        except RedisError as e:
            logger.warning("Redis %s failed: %s", op, e)
        return False, None

    def _flush_stale(self) -> bool:
        if not self._stale:
            return True
        user_ids = list(self._stale)
        ok, _ = self._execute("DELETE", self._client.delete, *(task_list_key(u) for u in user_ids))
        if ok:
            self._stale.difference_update(user_ids)
        return ok

    def _ready(self) -> bool:
        return self.available and self._flush_stale()

    def get(self, user_id: int) -> Optional[list[dict]]:
        """Return the cached snapshot for user_id, or None on miss or error.

        Redis expires the key itself, so anything returned is within the TTL.
        An unreadable payload is treated as a miss.
        """
        if not self._ready():
            return None
        _, raw = self._execute("GET", self._client.get, task_list_key(user_id))
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable cache entry for user %s", user_id)
            return None
        return data if isinstance(data, list) else None

    def set(self, user_id: int, tasks: list[dict]) -> None:
        """Store a snapshot with a fresh TTL, replacing any existing entry."""
        if self._ready():
            self._execute("SET", self._client.set, task_list_key(user_id), json.dumps(tasks), ex=self.ttl)

    def invalidate(self, user_id: int) -> None:
        """Delete the user's snapshot so the next read refetches from the store."""
        if self._ready():
            ok, _ = self._execute("DELETE", self._client.delete, task_list_key(user_id))
            if ok:
                return
        self._stale.add(user_id)

    def ping(self) -> bool:
        # Health checks always reach Redis, even while commands are bypassed.
        try:
            return bool(self._client.ping())
        except RedisError:
            return False

    def close(self) -> None:
        try:
            self._client.close()
        except RedisError as e:
            logger.warning("Redis close failed: %s", e)


def connect_cache(settings: Settings) -> TaskCache:
    """Return a RedisTaskCache if Redis is configured and reachable, else NullTaskCache.

    Only the startup ping is retried: connection and timeout errors back off
    exponentially (capped at _BACKOFF_CAP seconds) up to
    settings.redis_max_retries times. If it still fails, the app runs in
    pass-through mode for the rest of its life. Runtime commands run once
    with settings.redis_socket_timeout and are never retried.
    """
    if not settings.redis_url:
        logger.warning("REDIS_URL not configured -- running without cache")
        return NullTaskCache()

    client = Redis.from_url(
        settings.redis_url,
        socket_connect_timeout=settings.redis_connect_timeout,
        socket_timeout=settings.redis_socket_timeout,
        retry=Retry(NoBackoff(), 0),
    )
    startup_retry = Retry(
        ExponentialBackoff(cap=_BACKOFF_CAP, base=_BACKOFF_BASE),
        settings.redis_max_retries,
        supported_errors=(RedisConnectionError, RedisTimeoutError),
    )
    try:
        startup_retry.call_with_retry(client.ping, lambda e: logger.info("Redis ping failed, retrying: %s", e))
    except RedisError as e:
        logger.warning("Redis not available -- running without cache: %s", e)
        client.close()
        return NullTaskCache()

    logger.info("Redis connected successfully")
    return RedisTaskCache(client, ttl=settings.cache_ttl_seconds, retry_interval=settings.redis_retry_interval)
