"""Rate limiting for unauthenticated endpoints (password reset requests).

`RateLimiter` is the seam. `SlidingWindowRateLimiter` keeps its state in
process memory, so it is per-replica and forgets everything on restart.
`RedisRateLimiter` keeps one sorted set of hit timestamps per key in Redis and
is shared by every replica pointed at the same server.
"""

import logging
import math
import time
import uuid
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


class RateLimiter(ABC):
    @abstractmethod
    async def allow(self, key: str) -> bool:
        """Record a hit for `key`; False when the key is over its limit."""


class SlidingWindowRateLimiter(RateLimiter):
    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._next_sweep = clock() + window_seconds

    def __len__(self) -> int:
        """Number of keys currently tracked."""
        return len(self._hits)

    def _expire(self, hits: deque[float], now: float) -> None:
        while hits and now - hits[0] >= self.window_seconds:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        # Keys that are never asked about again would otherwise stay forever.
        for key in list(self._hits):
            hits = self._hits[key]
            self._expire(hits, now)
            if not hits:
                del self._hits[key]
        self._next_sweep = now + self.window_seconds

    async def allow(self, key: str) -> bool:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)

        hits = self._hits.setdefault(key, deque())
        self._expire(hits, now)
        if len(hits) >= self.limit:
            return False
        hits.append(now)
        return True

    def reset(self) -> None:
        self._hits.clear()


class RedisRateLimiter(RateLimiter):
    """Sliding window over a Redis sorted set scored by hit time.

    Redis being unreachable lets the request through: a password reset email
    is not worth failing the endpoint for.
    """

    def __init__(
        self,
        client: redis.Redis,
        limit: int,
        window_seconds: float,
        prefix: str = "crewleave:ratelimit",
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix
        self._clock = clock

    async def allow(self, key: str) -> bool:
        now = self._clock()
        window_key = f"{self.prefix}:{key}"
        member = f"{now}:{uuid.uuid4().hex}"

        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(window_key, 0, now - self.window_seconds)
                pipe.zadd(window_key, {member: now})
                pipe.zcard(window_key)
                pipe.expire(window_key, math.ceil(self.window_seconds))
                _, _, count, _ = await pipe.execute()

            if count > self.limit:
                # over the limit: the rejected hit does not count against the window
                await self.client.zrem(window_key, member)
                return False
            return True
        except RedisError:
            logger.exception("Rate limit check for %s failed, allowing the request", key)
            return True
