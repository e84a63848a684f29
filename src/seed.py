"""Demo catalog for local development, loaded when SEED_DEMO_DATA is set.

Nothing is written once any case exists, so restarting the server is safe.
"""

import logging
from datetime import timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from src.db import transaction
from src.models.dc_models import GiveawayStatus
from src.models.schemas import Case, CaseItem, Giveaway, Item, utcnow

logger = logging.getLogger(__name__)

# (name, weapon, rarity, is_special, market_hash_base, weight)
DEMO_ITEMS = [
    ("Sand Spray", "P250", "Mil-Spec", False, "P250 | Sand Spray", 40.0),
    ("Night Ops", "MP9", "Mil-Spec", False, "MP9 | Night Ops", 35.0),
    ("Urban Hazard", "UMP-45", "Restricted", False, "UMP-45 | Urban Hazard", 15.0),
    ("Redline", "AK-47", "Classified", False, "AK-47 | Redline", 6.0),
    ("Hyper Beast", "M4A1-S", "Covert", False, "M4A1-S | Hyper Beast", 3.0),
    ("Doppler", "Karambit", "Rare Special", True, "★ Karambit | Doppler", 1.0),
]

DEMO_CASE = {
    "slug": "starter-case",
    "name": "Starter Case",
    "case_price_cents": 300,
    "key_price_cents": 500,
}


async def seed_demo_data(session_factory: async_sessionmaker) -> bool:
    """Insert one demo case, its items and an active giveaway into an empty catalog

    Args:
        session_factory (async_sessionmaker): Factory bound to the target engine

    Returns:
        bool: True if anything was written
    """
    now = utcnow()
    async with transaction(session_factory) as session:
        existing = (await session.execute(select(func.count()).select_from(Case))).scalar_one()
        if existing:
            return False

        contents = []
        for name, weapon, rarity, is_special, hash_base, weight in DEMO_ITEMS:
            item = Item(
                name=name,
                weapon=weapon,
                rarity=rarity,
                is_special=is_special,
                market_hash_base=hash_base,
            )
            contents.append(CaseItem(item=item, weight=weight))
        session.add(Case(**DEMO_CASE, active=True, contents=contents))

        session.add(
            Giveaway(
                title="Weekly Giveaway",
                prize_text="AK-47 | Redline (Field-Tested)",
                tier_required=0,
                starts_at=now,
                ends_at=now + timedelta(days=7),
                status=GiveawayStatus.active.value,
            )
        )
    logger.info(f"Seeded demo case {DEMO_CASE['slug']} with {len(DEMO_ITEMS)} items")
    return True
