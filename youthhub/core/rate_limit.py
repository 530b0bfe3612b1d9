"""
Rate limiting over an injected counter store.

The store is a key -> counter map with TTL. The in-memory store serves a
single process; the Redis store is shared across instances.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import redis.asyncio as aioredis
import structlog

from youthhub.core.config import REDIS_CONFIG, settings

logger = structlog.get_logger()


class CounterStore(ABC):
    @abstractmethod
    async def increment(self, key: str, ttl_seconds: int) -> tuple[int, float]:
        """
        Add one to ``key``; the TTL starts with the first increment.

        Returns:
            The new count and the seconds left until the counter expires
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, key: str) -> tuple[int, float]:
        """Current count and seconds left, ``(0, 0)`` when absent."""
        raise NotImplementedError

    @abstractmethod
    async def reset(self, key: str) -> None:
        raise NotImplementedError


class InMemoryCounterStore(CounterStore):
    """
    Process-local store with lazy expiry.

    Expired keys are dropped when seen again and by a sweep that runs from
    ``increment`` every ``cleanup_interval`` seconds, so keys from clients that
    never return do not accumulate.

    Methods never await while touching the map, so each call is atomic on the event loop.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        cleanup_interval: float = 60,
    ) -> None:
        self._clock = clock
        self._counters: dict[str, tuple[int, float]] = {}
        self.cleanup_interval = cleanup_interval
        self.last_cleanup = clock()

    def _live(self, key: str, now: float) -> Optional[tuple[int, float]]:
        entry = self._counters.get(key)
        if entry is None:
            return None
        if entry[1] <= now:
            del self._counters[key]
            return None
        return entry

    def _cleanup_expired(self, now: float) -> None:
        for key in [k for k, (_, expires_at) in self._counters.items() if expires_at <= now]:
            del self._counters[key]
        self.last_cleanup = now

    async def increment(self, key: str, ttl_seconds: int) -> tuple[int, float]:
        now = self._clock()
        if now - self.last_cleanup > self.cleanup_interval:
            self._cleanup_expired(now)
        entry = self._live(key, now)
        if entry is None:
            entry = (0, now + ttl_seconds)
        count, expires_at = entry[0] + 1, entry[1]
        self._counters[key] = (count, expires_at)
        return count, expires_at - now

    async def get(self, key: str) -> tuple[int, float]:
        now = self._clock()
        entry = self._live(key, now)
        if entry is None:
            return 0, 0.0
        return entry[0], entry[1] - now

    async def reset(self, key: str) -> None:
        self._counters.pop(key, None)


class RedisCounterStore(CounterStore):
    """Shared store using INCR and EXPIRE."""

    def __init__(self, client: Optional[aioredis.Redis] = None) -> None:
        self._client = client

    def _get_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                REDIS_CONFIG["url"],
                decode_responses=True,
                socket_connect_timeout=REDIS_CONFIG["socket_connect_timeout"],
                socket_timeout=REDIS_CONFIG["socket_timeout"],
                retry_on_timeout=REDIS_CONFIG["retry_on_timeout"],
            )
        return self._client

    async def increment(self, key: str, ttl_seconds: int) -> tuple[int, float]:
        client = self._get_client()
        async with client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.ttl(key)
            count, ttl = await pipe.execute()
        if ttl is None or ttl < 0:
            await client.expire(key, ttl_seconds)
            ttl = ttl_seconds
        return int(count), float(ttl)

    async def get(self, key: str) -> tuple[int, float]:
        client = self._get_client()
        raw = await client.get(key)
        if raw is None:
            return 0, 0.0
        ttl = await client.ttl(key)
        return int(raw), float(max(ttl, 0))

    async def reset(self, key: str) -> None:
        await self._get_client().delete(key)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


class FixedWindowLimiter:
    """At most ``limit`` hits per key in each ``window_seconds`` window."""

    def __init__(self, store: CounterStore, limit: int, window_seconds: int = 60, prefix: str = "rl") -> None:
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def hit(self, key: str) -> RateLimitResult:
        count, ttl = await self.store.increment(self._key(key), self.window_seconds)
        allowed = count <= self.limit
        if not allowed:
            logger.warning("Rate limit exceeded", key=self._key(key), count=count, limit=self.limit)
        return RateLimitResult(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            retry_after=max(1, int(ttl + 0.999)) if not allowed else 0,
        )


@dataclass(frozen=True)
class LoginAttemptStatus:
    blocked: bool
    attempts: int
    blocked_until: Optional[datetime] = None


class LoginAttemptLimiter:
    """Blocks an email after ``max_attempts`` failed logins until ``block_seconds`` pass."""

    def __init__(self, store: CounterStore, max_attempts: int = 5, block_seconds: int = 900) -> None:
        self.store = store
        self.max_attempts = max_attempts
        self.block_seconds = block_seconds

    @staticmethod
    def _key(email: str) -> str:
        return f"login:{email.strip().lower()}"

    def _status(self, attempts: int, ttl: float) -> LoginAttemptStatus:
        if attempts >= self.max_attempts:
            return LoginAttemptStatus(
                blocked=True,
                attempts=attempts,
                blocked_until=datetime.now(timezone.utc) + timedelta(seconds=ttl),
            )
        return LoginAttemptStatus(blocked=False, attempts=attempts)

    async def check(self, email: str) -> LoginAttemptStatus:
        attempts, ttl = await self.store.get(self._key(email))
        return self._status(attempts, ttl)

    async def record_failure(self, email: str) -> LoginAttemptStatus:
        attempts, ttl = await self.store.increment(self._key(email), self.block_seconds)
        status = self._status(attempts, ttl)
        if status.blocked:
            logger.warning("Login blocked after repeated failures", attempts=attempts)
        return status

    async def reset(self, email: str) -> None:
        await self.store.reset(self._key(email))


def build_counter_store(backend: str) -> CounterStore:
    if backend == "redis":
        return RedisCounterStore()
    return InMemoryCounterStore()


counter_store = build_counter_store(settings.RATE_LIMIT_BACKEND)

report_limiter = FixedWindowLimiter(counter_store, limit=settings.REPORTS_PER_MINUTE, window_seconds=60, prefix="reports")
request_limiter = FixedWindowLimiter(counter_store, limit=settings.RATE_LIMIT_PER_MINUTE, window_seconds=60, prefix="api")
login_limiter = LoginAttemptLimiter(
    counter_store,
    max_attempts=settings.LOGIN_MAX_ATTEMPTS,
    block_seconds=settings.LOGIN_BLOCK_MINUTES * 60,
)
