"""External market price lookups.

A price source turns a market hash name into integer cents or raises
``ExternalPriceUnavailable``. It never raises anything else, so the price
resolver can always fall back.
"""

import logging
import re
from typing import Optional, Protocol

import httpx

from src.errors import ExternalPriceUnavailable

logger = logging.getLogger(__name__)

CS2_APP_ID = 730
USD_CURRENCY = 1
_PRICE_RE = re.compile(r"(\d[\d,]*)(?:\.(\d{1,2}))?")


class PriceSource(Protocol):
    async def fetch_price_cents(self, market_hash_name: str) -> int:
        ...


def parse_price_cents(text: Optional[str]) -> int:
    """Parse a display price such as ``"$1,234.56"`` into cents.

    Raises:
        ValueError: The text holds no price
    """
    if not text:
        raise ValueError("empty price")
    match = _PRICE_RE.search(text)
    if match is None:
        raise ValueError(f"no price in {text!r}")
    whole = int(match.group(1).replace(",", ""))
    fraction = (match.group(2) or "0").ljust(2, "0")
    return whole * 100 + int(fraction)


class SteamMarketPriceSource:
    """Steam Community Market ``priceoverview`` lookups with a bounded timeout."""

    def __init__(self, url: str, timeout: float = 8.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def fetch_price_cents(self, market_hash_name: str) -> int:
        params = {
            "appid": CS2_APP_ID,
            "currency": USD_CURRENCY,
            "market_hash_name": market_hash_name,
        }
        try:
            if self._client is not None:
                r = await self._client.get(self.url, params=params, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    r = await client.get(self.url, params=params, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise ExternalPriceUnavailable(f"{market_hash_name}: {e!r}") from e

        if r.status_code != 200:
            raise ExternalPriceUnavailable(f"{market_hash_name}: status {r.status_code}")
        try:
            data = r.json()
        except ValueError as e:
            raise ExternalPriceUnavailable(f"{market_hash_name}: invalid json") from e
        if not isinstance(data, dict) or not data.get("success"):
            raise ExternalPriceUnavailable(f"{market_hash_name}: lookup unsuccessful")
        try:
            return parse_price_cents(data.get("lowest_price") or data.get("median_price"))
        except ValueError as e:
            raise ExternalPriceUnavailable(f"{market_hash_name}: {e}") from e


class DisabledPriceSource:
    """Used when no market lookups are configured; every key gets its fallback price."""

    async def fetch_price_cents(self, market_hash_name: str) -> int:
        raise ExternalPriceUnavailable("market price source disabled")


def build_price_source(kind: str, url: str, timeout: float) -> PriceSource:
    if kind == "steam":
        return SteamMarketPriceSource(url, timeout)
    if kind != "disabled":
        logger.warning(f"Unknown market price source {kind!r}, using fallback prices only")
    return DisabledPriceSource()
