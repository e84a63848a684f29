"""Market price resolution backed by the ``market_price_cache`` table.

- Fresh entry: served as is.
- Stale entry: served as is, a background refresh is scheduled.
- Missing entry: refreshed synchronously before answering.

A refresh that cannot reach the market stores the deterministic fallback price
for the key. Cache writes commit in their own session and never join a ledger
transaction.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Set, Tuple

from sqlalchemy.ext.asyncio import async_sessionmaker

from src.crud import CreateData, ReadData
from src.db import read_session, transaction
from src.domain.economy_rules import fallback_price_cents
from src.errors import ExternalPriceUnavailable
from src.models.dc_models import PriceSource as PriceSourceName
from src.models.schemas import utcnow
from src.refresh_claims import RefreshClaims
from src.services.market_source import PriceSource

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=3)


class PriceResolver:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        source: PriceSource,
        ttl: timedelta = DEFAULT_TTL,
        claims: RefreshClaims = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.source = source
        self.ttl = ttl
        self.claims = claims or RefreshClaims()
        self.clock = clock
        self._tasks: Set[asyncio.Task] = set()

    def is_fresh(self, updated_at: datetime, now: datetime) -> bool:
        return now - updated_at < self.ttl

    async def resolve_price(self, market_hash_name: str) -> int:
        """Return the price for a market key without ever failing on the market side

        Args:
            market_hash_name (str): Fully qualified market key (item + wear)

        Returns:
            int: Price in cents
        """
        async with read_session(self.session_factory) as session:
            entry = await ReadData.read_price_entry(market_hash_name, session)
            cached = None if entry is None else (int(entry.price_cents), entry.updated_at)

        if cached is not None:
            price_cents, updated_at = cached
            if not self.is_fresh(updated_at, self.clock()):
                self.schedule_refresh(market_hash_name)
            return price_cents

        price_cents, _ = await self.refresh(market_hash_name)
        return price_cents

    async def refresh(self, market_hash_name: str) -> Tuple[int, bool]:
        """Look the key up on the market and store the result

        Args:
            market_hash_name (str): Market key to refresh

        Returns:
            Tuple[int, bool]: Stored price and whether it came from the market
        """
        try:
            price_cents = await self.source.fetch_price_cents(market_hash_name)
            source = PriceSourceName.market
        except ExternalPriceUnavailable as e:
            price_cents = fallback_price_cents(market_hash_name)
            source = PriceSourceName.fallback
            logger.warning(f"Market price unavailable, using fallback {price_cents} for {market_hash_name}: {e}")

        async with transaction(self.session_factory) as session:
            await CreateData.upsert_price_entry(
                market_hash_name, price_cents, source.value, self.clock(), session
            )
        return price_cents, source is PriceSourceName.market

    def schedule_refresh(self, market_hash_name: str) -> None:
        """Refresh a stale key in the background and return immediately."""
        task = asyncio.get_running_loop().create_task(self._background_refresh(market_hash_name))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _background_refresh(self, market_hash_name: str) -> None:
        if not await self.claims.claim(market_hash_name):
            return
        try:
            await self.refresh(market_hash_name)
        except Exception as e:
            logger.error(f"Background refresh failed for {market_hash_name}: {e}")
        finally:
            await self.claims.release(market_hash_name)

    async def drain(self) -> None:
        """Wait for scheduled background refreshes to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
