from redis.exceptions import ConnectionError as RedisConnectionError

from crewleave.services.ratelimit import RedisRateLimiter, SlidingWindowRateLimiter


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the sorted-set sliding window."""

    def __init__(self, down: bool = False):
        self.sets: dict[str, dict[str, float]] = {}
        self.ttl: dict[str, int] = {}
        self.down = down

    def pipeline(self, transaction: bool = True):
        return FakePipeline(self)

    async def zrem(self, key, member):
        self.sets.get(key, {}).pop(member, None)


class FakePipeline:
    def __init__(self, client: FakeRedis):
        self.client = client
        self.commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def zremrangebyscore(self, key, low, high):
        self.commands.append(("zremrangebyscore", key, low, high))

    def zadd(self, key, mapping):
        self.commands.append(("zadd", key, mapping))

    def zcard(self, key):
        self.commands.append(("zcard", key))

    def expire(self, key, seconds):
        self.commands.append(("expire", key, seconds))

    async def execute(self):
        if self.client.down:
            raise RedisConnectionError("connection refused")
        results = []
        for name, key, *args in self.commands:
            members = self.client.sets.setdefault(key, {})
            if name == "zremrangebyscore":
                low, high = args
                stale = [m for m, score in members.items() if low <= score <= high]
                for member in stale:
                    del members[member]
                results.append(len(stale))
            elif name == "zadd":
                members.update(args[0])
                results.append(len(args[0]))
            elif name == "zcard":
                results.append(len(members))
            else:
                self.client.ttl[key] = args[0]
                results.append(True)
        return results


async def test_limit_per_key_within_window():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=3, window_seconds=60, clock=clock)

    assert [await limiter.allow("ip:1.2.3.4") for _ in range(4)] == [True, True, True, False]
    assert await limiter.allow("ip:5.6.7.8")


async def test_window_slides():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=60, clock=clock)

    assert await limiter.allow("k")
    clock.now += 30
    assert await limiter.allow("k")
    assert not await limiter.allow("k")

    clock.now += 30  # first hit is now exactly one window old
    assert await limiter.allow("k")
    assert not await limiter.allow("k")


async def test_reset_forgets_everything():
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=FakeClock())
    assert await limiter.allow("k")
    assert not await limiter.allow("k")
    limiter.reset()
    assert await limiter.allow("k")


async def test_expired_keys_are_dropped():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=5, window_seconds=60, clock=clock)
    for i in range(10_000):
        await limiter.allow(f"email:crew{i}@example.com")
    assert len(limiter) == 10_000

    clock.now += 61
    assert await limiter.allow("email:late@example.com")
    assert len(limiter) == 1


async def test_keys_inside_their_window_survive_a_sweep():
    clock = FakeClock()
    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=60, clock=clock)
    await limiter.allow("old")
    clock.now += 45
    await limiter.allow("recent")

    clock.now += 20  # sweep due: "old" is 65s old, "recent" 20s
    assert await limiter.allow("other")
    assert len(limiter) == 2
    assert not await limiter.allow("recent")


async def test_redis_limiter_counts_per_key():
    clock = FakeClock()
    client = FakeRedis()
    limiter = RedisRateLimiter(client, limit=2, window_seconds=60, clock=clock)

    assert await limiter.allow("ip:1.2.3.4")
    assert await limiter.allow("ip:1.2.3.4")
    assert not await limiter.allow("ip:1.2.3.4")
    assert await limiter.allow("ip:5.6.7.8")

    # rejected hits are taken back out of the window
    assert len(client.sets["crewleave:ratelimit:ip:1.2.3.4"]) == 2
    assert client.ttl["crewleave:ratelimit:ip:1.2.3.4"] == 60


async def test_redis_limiter_window_slides():
    clock = FakeClock()
    limiter = RedisRateLimiter(FakeRedis(), limit=1, window_seconds=60, clock=clock)

    assert await limiter.allow("k")
    clock.now += 59
    assert not await limiter.allow("k")
    clock.now += 1
    assert await limiter.allow("k")


async def test_redis_outage_lets_requests_through():
    limiter = RedisRateLimiter(FakeRedis(down=True), limit=1, window_seconds=60)
    assert await limiter.allow("k")
    assert await limiter.allow("k")
