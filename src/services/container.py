from dataclasses import dataclass
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from src.config import EconomyConfig
from src.db import Session, make_session_factory
from src.db import engine as default_engine
from src.refresh_claims import RefreshClaims
from src.services.catalog import Catalog
from src.services.ledger import EconomyLedger
from src.services.market_source import PriceSource, build_price_source
from src.services.price_cache import PriceResolver


@dataclass
class EconomyServices:
    """Everything a request handler or scheduled job needs, built once per app."""

    config: EconomyConfig
    engine: AsyncEngine
    session_factory: async_sessionmaker
    claims: RefreshClaims
    resolver: PriceResolver
    ledger: EconomyLedger
    catalog: Catalog


def build_services(
    config: EconomyConfig,
    engine: Optional[AsyncEngine] = None,
    source: Optional[PriceSource] = None,
) -> EconomyServices:
    """Wire the ledger, resolver and catalog around one engine

    Args:
        config (EconomyConfig): Economy settings
        engine (Optional[AsyncEngine]): Engine to use. Defaults to the one picked by DB_BACKEND.
        source (Optional[PriceSource]): Price source. Defaults to the configured one.

    Returns:
        EconomyServices: Wired services
    """
    if engine is None:
        engine, session_factory = default_engine, Session
    else:
        session_factory = make_session_factory(engine)
    if source is None:
        source = build_price_source(
            config.market_price_source, config.market_price_url, config.market_price_timeout
        )

    claims = RefreshClaims.from_url(config.redis_url)
    resolver = PriceResolver(session_factory, source, ttl=config.market_cache_ttl, claims=claims)
    return EconomyServices(
        config=config,
        engine=engine,
        session_factory=session_factory,
        claims=claims,
        resolver=resolver,
        ledger=EconomyLedger(session_factory, config, resolver),
        catalog=Catalog(session_factory, config),
    )
