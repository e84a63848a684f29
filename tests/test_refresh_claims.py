from redis.exceptions import ConnectionError as RedisConnectionError

from src.refresh_claims import CLAIM_PREFIX, RefreshClaims


class FakeRedis:
    """Just enough of redis.asyncio.Redis for SET NX EX claims."""

    def __init__(self, fail: bool = False):
        self.store = {}
        self.fail = fail
        self.closed = False

    async def set(self, key, value, nx=False, ex=None):
        if self.fail:
            raise RedisConnectionError("redis down")
        if nx and key in self.store:
            return None
        self.store[key] = (value, ex)
        return True

    async def delete(self, key):
        if self.fail:
            raise RedisConnectionError("redis down")
        self.store.pop(key, None)

    async def aclose(self):
        self.closed = True


async def test_local_claims_without_redis():
    claims = RefreshClaims()
    assert await claims.claim("key")
    assert not await claims.claim("key")
    await claims.release("key")
    assert await claims.claim("key")


async def test_claim_is_shared_through_redis():
    redis = FakeRedis()
    worker_a = RefreshClaims(redis, ttl_sec=30)
    worker_b = RefreshClaims(redis, ttl_sec=30)

    assert await worker_a.claim("key")
    assert redis.store[CLAIM_PREFIX + "key"] == ("1", 30)
    assert not await worker_b.claim("key")

    await worker_a.release("key")
    assert await worker_b.claim("key")


async def test_redis_outage_falls_back_to_local_claims():
    claims = RefreshClaims(FakeRedis(fail=True))
    assert await claims.claim("key")
    assert not await claims.claim("key")
    await claims.release("key")
    assert await claims.claim("key")


async def test_close():
    redis = FakeRedis()
    await RefreshClaims(redis).close()
    assert redis.closed
    await RefreshClaims().close()


def test_from_url_without_redis():
    assert RefreshClaims.from_url(None).redis is None
    assert RefreshClaims.from_url("redis://localhost:6379/0").redis is not None
