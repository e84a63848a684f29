"""Shared fixtures: an in-memory database per test (or a database file for
concurrency tests), a fake market and a fixed clock."""

import os

os.environ.setdefault("DB_BACKEND", "sqlite")

from datetime import datetime, timedelta
from itertools import cycle
from typing import Dict, List, Optional, Sequence

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from src.config import EconomyConfig
from src.create_sqlite_engine import use_immediate_transactions
from src.db import create_tables, make_session_factory, transaction
from src.errors import ExternalPriceUnavailable
from src.models.dc_models import GiveawayStatus
from src.models.schemas import Case, CaseItem, Giveaway, Item, User
from src.refresh_claims import RefreshClaims
from src.services.catalog import Catalog
from src.services.ledger import EconomyLedger
from src.services.price_cache import PriceResolver

START = datetime(2026, 3, 1, 12, 0, 0)
ADMIN_STEAM_ID = "76561190000000001"


class FakePriceSource:
    """Market stand-in: fixed prices per key, a default, or a simulated outage."""

    def __init__(self, prices: Optional[Dict[str, int]] = None, default: int = 1234, fail: bool = False):
        self.prices = dict(prices or {})
        self.default = default
        self.fail = fail
        self.calls: List[str] = []

    async def fetch_price_cents(self, market_hash_name: str) -> int:
        self.calls.append(market_hash_name)
        if self.fail:
            raise ExternalPriceUnavailable("market down")
        return self.prices.get(market_hash_name, self.default)


class Clock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def draws(values: Sequence[float]):
    """Cycle through fixed draws in [0, 1)."""
    it = cycle(values)
    return lambda: next(it)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """A database file with one connection per session, so transactions really overlap."""
    engine = use_immediate_transactions(create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'economy.db'}"))
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def file_session_factory(file_engine):
    return make_session_factory(file_engine)


@pytest_asyncio.fixture
async def file_ledger(file_session_factory, config, source, clock):
    resolver = PriceResolver(file_session_factory, source, claims=RefreshClaims(), clock=clock)
    yield EconomyLedger(
        file_session_factory,
        config,
        resolver,
        rand=lambda: 0.0,
        rand_int=lambda lo, hi: lo,
        clock=clock,
    )
    await resolver.drain()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def source():
    return FakePriceSource()


@pytest.fixture
def config():
    return EconomyConfig(admin_steam_ids=frozenset({ADMIN_STEAM_ID}), enable_jobs=False)


@pytest_asyncio.fixture
async def resolver(session_factory, source, clock):
    resolver = PriceResolver(session_factory, source, claims=RefreshClaims(), clock=clock)
    yield resolver
    await resolver.drain()


@pytest.fixture
def ledger(session_factory, config, resolver, clock):
    return EconomyLedger(
        session_factory,
        config,
        resolver,
        rand=lambda: 0.0,
        rand_int=lambda lo, hi: lo,
        clock=clock,
    )


@pytest.fixture
def catalog(session_factory, config):
    return Catalog(session_factory, config)


async def add_user(session_factory, steam_id: str = "76561190000000100", gems_cents: int = 50_000, **kwargs) -> User:
    user = User(steam_id=steam_id, display_name=kwargs.pop("display_name", f"player-{steam_id[-3:]}"), gems_cents=gems_cents, **kwargs)
    async with transaction(session_factory) as session:
        session.add(user)
    return user


async def add_case(
    session_factory,
    slug: str = "starter-case",
    case_price_cents: int = 300,
    key_price_cents: int = 500,
    items: Sequence[tuple] = (("Redline", "AK-47", "Classified", False, "AK-47 | Redline", 1.0),),
    active: bool = True,
) -> Case:
    """Add a case whose contents are (name, weapon, rarity, is_special, hash_base, weight) tuples."""
    contents = [
        CaseItem(
            item=Item(name=name, weapon=weapon, rarity=rarity, is_special=is_special, market_hash_base=hash_base),
            weight=weight,
        )
        for name, weapon, rarity, is_special, hash_base, weight in items
    ]
    case = Case(
        slug=slug,
        name=slug.replace("-", " ").title(),
        case_price_cents=case_price_cents,
        key_price_cents=key_price_cents,
        active=active,
        contents=contents,
    )
    async with transaction(session_factory) as session:
        session.add(case)
    return case


async def add_giveaway(session_factory, status: str = GiveawayStatus.active.value, title: str = "Weekly Giveaway") -> Giveaway:
    giveaway = Giveaway(
        title=title,
        prize_text="AK-47 | Redline (Field-Tested)",
        tier_required=0,
        starts_at=START,
        ends_at=START + timedelta(days=7),
        status=status,
    )
    async with transaction(session_factory) as session:
        session.add(giveaway)
    return giveaway
