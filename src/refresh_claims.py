import logging
from typing import Optional, Set

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

CLAIM_PREFIX = "market-refresh:"
CLAIM_TTL_SEC = 60


class RefreshClaims:
    """Makes sure only one background refresh per market key runs at a time.

    Claims are always tracked in-process. With a redis connection the claim is
    also taken with ``SET NX EX`` so workers in other processes skip the key.
    """

    def __init__(self, redis: Optional[Redis] = None, ttl_sec: int = CLAIM_TTL_SEC):
        self.redis = redis
        self.ttl_sec = ttl_sec
        self._local: Set[str] = set()

    @classmethod
    def from_url(cls, redis_url: Optional[str]) -> "RefreshClaims":
        if not redis_url:
            return cls()
        return cls(Redis.from_url(redis_url, decode_responses=True, health_check_interval=30))

    async def claim(self, market_hash_name: str) -> bool:
        """Try to take the refresh claim for a key

        Args:
            market_hash_name (str): Market key about to be refreshed

        Returns:
            bool: True if the caller should run the refresh
        """
        if market_hash_name in self._local:
            return False
        if self.redis is not None:
            try:
                taken = await self.redis.set(
                    CLAIM_PREFIX + market_hash_name, "1", nx=True, ex=self.ttl_sec
                )
            except Exception as e:
                # keep the local claim only
                logger.warning(f"Redis claim failed for {market_hash_name}: {e}")
                taken = True
            if not taken:
                return False
        self._local.add(market_hash_name)
        return True

    async def release(self, market_hash_name: str) -> None:
        self._local.discard(market_hash_name)
        if self.redis is not None:
            try:
                await self.redis.delete(CLAIM_PREFIX + market_hash_name)
            except Exception as e:
                logger.warning(f"Redis release failed for {market_hash_name}: {e}")

    async def close(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
