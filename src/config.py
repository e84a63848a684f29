import os
from datetime import timedelta
from typing import FrozenSet, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

DEFAULT_MARKET_PRICE_URL = "https://steamcommunity.com/market/priceoverview/"


class EconomyConfig(BaseModel):
    """Economy settings injected into the ledger, the price resolver and the routers."""

    starting_gems_cents: int = 50_000
    streak_bonus_cents: int = 750
    giveaway_entry_cost_cents: int = 1_000
    admin_steam_ids: FrozenSet[str] = frozenset()
    market_cache_ttl: timedelta = timedelta(hours=3)
    market_refresh_batch_size: int = 100
    market_refresh_interval_minutes: int = 30
    market_price_source: str = "steam"
    market_price_url: str = DEFAULT_MARKET_PRICE_URL
    market_price_timeout: float = 8.0
    enable_jobs: bool = True
    redis_url: Optional[str] = None
    seed_demo_data: bool = False

    class Config:
        frozen = True


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def load_config() -> EconomyConfig:
    """Build the economy config from the environment (``.env`` is loaded first)."""
    load_dotenv()
    admin_ids = frozenset(
        s.strip() for s in os.getenv("ADMIN_STEAM_IDS", "").split(",") if s.strip()
    )
    return EconomyConfig(
        starting_gems_cents=int(os.getenv("STARTING_GEMS_CENTS", "50000")),
        streak_bonus_cents=int(os.getenv("STREAK_BONUS_CENTS", "750")),
        giveaway_entry_cost_cents=int(os.getenv("GIVEAWAY_ENTRY_COST_CENTS", "1000")),
        admin_steam_ids=admin_ids,
        market_cache_ttl=timedelta(hours=float(os.getenv("MARKET_CACHE_TTL_HOURS", "3"))),
        market_refresh_batch_size=int(os.getenv("MARKET_REFRESH_BATCH_SIZE", "100")),
        market_refresh_interval_minutes=int(os.getenv("MARKET_REFRESH_INTERVAL_MINUTES", "30")),
        market_price_source=os.getenv("MARKET_PRICE_SOURCE", "steam").strip().lower(),
        market_price_url=os.getenv("MARKET_PRICE_URL", DEFAULT_MARKET_PRICE_URL),
        market_price_timeout=float(os.getenv("MARKET_PRICE_TIMEOUT", "8")),
        enable_jobs=_flag("ENABLE_JOBS", "true"),
        redis_url=os.getenv("REDIS_URL") or None,
        seed_demo_data=_flag("SEED_DEMO_DATA", "false"),
    )
