"""CRUD helpers for the economy tables.

None of these helpers commit. They are called inside ``transaction()`` (or a
plain read session) and let exceptions propagate so the caller's transaction
rolls back as a whole. ``LockData`` helpers take row locks with
``SELECT ... FOR UPDATE``. Balances only change through relative updates
(``gems_cents = gems_cents + n``), never by writing back a value read earlier.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from src.models.schemas import (
    Case,
    CaseItem,
    Giveaway,
    GiveawayEntry,
    GiveawayWinner,
    Inventory,
    Item,
    MarketPriceCache,
    User,
    utcnow,
)


def _insert_for(session: AsyncSession):
    """Return the dialect ``insert`` that supports ``ON CONFLICT``."""
    if session.bind.dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


class ReadData:
    @staticmethod
    async def read_user(user_id: UUID, session: AsyncSession) -> Optional[User]:
        stmt = select(User).where(User.user_id == user_id)
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_user_by_steam_id(steam_id: str, session: AsyncSession) -> Optional[User]:
        stmt = select(User).where(User.steam_id == steam_id)
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_case_by_slug(slug: str, session: AsyncSession, active_only: bool = True) -> Optional[Case]:
        """Read a case by its slug

        Args:
            slug (str): Case slug
            active_only (bool, optional): Ignore inactive cases. Defaults to True.

        Returns:
            Optional[Case]: The case, or None if there is no match
        """
        stmt = select(Case).where(Case.slug == slug)
        if active_only:
            stmt = stmt.where(Case.active.is_(True))
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_active_cases(session: AsyncSession) -> List[Case]:
        stmt = select(Case).where(Case.active.is_(True)).order_by(Case.case_id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_case_contents(case_id: UUID, session: AsyncSession) -> List[CaseItem]:
        """Read the weighted contents of a case with their items

        Args:
            case_id (UUID): To identify the case

        Returns:
            List[CaseItem]: Contents in a stable order, special items first
        """
        stmt = (
            select(CaseItem)
            .join(Item, Item.item_id == CaseItem.item_id)
            .options(joinedload(CaseItem.item))
            .where(CaseItem.case_id == case_id)
            .order_by(desc(Item.is_special), Item.rarity, Item.name)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_inventory(user_id: UUID, session: AsyncSession, limit: int = 200) -> List[Inventory]:
        stmt = (
            select(Inventory)
            .options(joinedload(Inventory.item))
            .where(Inventory.user_id == user_id)
            .order_by(desc(Inventory.created_at))
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_price_entry(market_hash_name: str, session: AsyncSession) -> Optional[MarketPriceCache]:
        stmt = select(MarketPriceCache).where(MarketPriceCache.market_hash_name == market_hash_name)
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_stale_price_keys(cutoff: datetime, limit: int, session: AsyncSession) -> List[str]:
        """Collect market keys refreshed before ``cutoff``, oldest first

        Args:
            cutoff (datetime): Entries with updated_at older than this are stale
            limit (int): Maximum number of keys

        Returns:
            List[str]: Stale market hash names
        """
        stmt = (
            select(MarketPriceCache.market_hash_name)
            .where(MarketPriceCache.updated_at < cutoff)
            .order_by(MarketPriceCache.updated_at)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_leaderboard(session: AsyncSession, limit: int = 50) -> List[User]:
        stmt = select(User).order_by(desc(User.gems_cents)).limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_giveaways(session: AsyncSession, limit: int = 50) -> List[Giveaway]:
        stmt = select(Giveaway).order_by(desc(Giveaway.starts_at)).limit(limit)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_giveaway(giveaway_id: UUID, session: AsyncSession) -> Optional[Giveaway]:
        stmt = select(Giveaway).where(Giveaway.giveaway_id == giveaway_id)
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_positive_entries(giveaway_id: UUID, session: AsyncSession) -> List[Tuple[UUID, int]]:
        """Read (user_id, entries) pairs with a positive entry count

        Args:
            giveaway_id (UUID): To identify the giveaway

        Returns:
            List[Tuple[UUID, int]]: Pairs ordered by user_id so draws are reproducible
        """
        stmt = (
            select(GiveawayEntry.user_id, GiveawayEntry.entries)
            .where(GiveawayEntry.giveaway_id == giveaway_id, GiveawayEntry.entries > 0)
            .order_by(GiveawayEntry.user_id)
        )
        result = await session.execute(stmt)
        return [(row.user_id, int(row.entries)) for row in result.all()]

    @staticmethod
    async def read_total_entries(giveaway_id: UUID, session: AsyncSession) -> int:
        stmt = select(func.coalesce(func.sum(GiveawayEntry.entries), 0)).where(
            GiveawayEntry.giveaway_id == giveaway_id
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    async def read_user_entries(giveaway_id: UUID, user_id: UUID, session: AsyncSession) -> int:
        stmt = select(GiveawayEntry.entries).where(
            GiveawayEntry.giveaway_id == giveaway_id, GiveawayEntry.user_id == user_id
        )
        result = await session.execute(stmt)
        return int(result.scalar_one_or_none() or 0)

    @staticmethod
    async def read_winner(giveaway_id: UUID, session: AsyncSession) -> Optional[GiveawayWinner]:
        stmt = (
            select(GiveawayWinner)
            .options(joinedload(GiveawayWinner.user), joinedload(GiveawayWinner.giveaway))
            .where(GiveawayWinner.giveaway_id == giveaway_id)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_recent_winners(session: AsyncSession, limit: int = 50) -> List[GiveawayWinner]:
        stmt = (
            select(GiveawayWinner)
            .options(joinedload(GiveawayWinner.user), joinedload(GiveawayWinner.giveaway))
            .order_by(desc(GiveawayWinner.picked_at))
            .limit(limit)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())


class LockData:
    @staticmethod
    async def lock_user(user_id: UUID, session: AsyncSession) -> Optional[User]:
        """Lock the user's balance row until the transaction ends

        Args:
            user_id (UUID): To identify the user

        Returns:
            Optional[User]: The locked user row
        """
        stmt = (
            select(User)
            .where(User.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def lock_inventory_item(inventory_id: UUID, session: AsyncSession) -> Optional[Inventory]:
        stmt = (
            select(Inventory)
            .where(Inventory.inventory_id == inventory_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def lock_giveaway(giveaway_id: UUID, session: AsyncSession) -> Optional[Giveaway]:
        stmt = (
            select(Giveaway)
            .where(Giveaway.giveaway_id == giveaway_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().first()


class CreateData:
    @staticmethod
    async def add_inventory_item(inventory: Inventory, session: AsyncSession) -> Inventory:
        """Insert a new inventory row and flush it so generated values are available

        Args:
            inventory (Inventory): Inventory row with the frozen drop price
        """
        session.add(inventory)
        await session.flush()
        return inventory

    @staticmethod
    async def upsert_user(
        steam_id: str,
        display_name: str,
        avatar: Optional[str],
        starting_gems_cents: int,
        is_admin: bool,
        session: AsyncSession,
    ) -> None:
        """Insert the user with starting gems, or refresh profile fields if it exists

        The balance of an existing user is never touched here.
        """
        insert = _insert_for(session)
        stmt = insert(User).values(
            steam_id=steam_id,
            display_name=display_name,
            avatar=avatar,
            gems_cents=starting_gems_cents,
            is_admin=is_admin,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[User.steam_id],
            set_={
                "display_name": stmt.excluded.display_name,
                "avatar": stmt.excluded.avatar,
                "is_admin": stmt.excluded.is_admin,
                "updated_at": utcnow(),
            },
        )
        await session.execute(stmt)

    @staticmethod
    async def upsert_price_entry(
        market_hash_name: str, price_cents: int, source: str, updated_at: datetime, session: AsyncSession
    ) -> None:
        """Write the cached price for a market key; the last write wins

        Args:
            market_hash_name (str): Fully qualified market key
            price_cents (int): Price to cache
            source (str): "market" or "fallback"
            updated_at (datetime): Refresh timestamp
        """
        insert = _insert_for(session)
        stmt = insert(MarketPriceCache).values(
            market_hash_name=market_hash_name,
            price_cents=price_cents,
            source=source,
            updated_at=updated_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[MarketPriceCache.market_hash_name],
            set_={
                "price_cents": stmt.excluded.price_cents,
                "source": stmt.excluded.source,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await session.execute(stmt)

    @staticmethod
    async def add_giveaway_entries(giveaway_id: UUID, user_id: UUID, entries: int, session: AsyncSession) -> None:
        """Add entries to the user's cumulative count for a giveaway

        Args:
            giveaway_id (UUID): To identify the giveaway
            user_id (UUID): To identify the user
            entries (int): Number of entries bought now
        """
        insert = _insert_for(session)
        stmt = insert(GiveawayEntry).values(giveaway_id=giveaway_id, user_id=user_id, entries=entries)
        stmt = stmt.on_conflict_do_update(
            index_elements=[GiveawayEntry.giveaway_id, GiveawayEntry.user_id],
            set_={"entries": GiveawayEntry.entries + stmt.excluded.entries},
        )
        await session.execute(stmt)

    @staticmethod
    async def upsert_winner(giveaway_id: UUID, user_id: UUID, picked_at: datetime, session: AsyncSession) -> None:
        """Record the giveaway winner; a second settlement overwrites the first

        Args:
            giveaway_id (UUID): To identify the giveaway
            user_id (UUID): Winning user
            picked_at (datetime): Draw timestamp
        """
        insert = _insert_for(session)
        stmt = insert(GiveawayWinner).values(giveaway_id=giveaway_id, user_id=user_id, picked_at=picked_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=[GiveawayWinner.giveaway_id],
            set_={"user_id": stmt.excluded.user_id, "picked_at": stmt.excluded.picked_at},
        )
        await session.execute(stmt)


class UpdateData:
    @staticmethod
    async def debit_balance(user_id: UUID, amount: int, now: datetime, session: AsyncSession) -> Optional[int]:
        """Subtract ``amount`` from the balance if it covers it

        The check and the write are one statement, so the balance can never go
        below zero whatever runs alongside.

        Args:
            user_id (UUID): To identify the user
            amount (int): Gems cents to take

        Returns:
            Optional[int]: New balance, or None if the user is unknown or short of gems
        """
        stmt = (
            update(User)
            .where(User.user_id == user_id, User.gems_cents >= amount)
            .values(gems_cents=User.gems_cents - amount, updated_at=now)
            .returning(User.gems_cents)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def credit_balance(user_id: UUID, amount: int, now: datetime, session: AsyncSession) -> Optional[int]:
        """Add ``amount`` to the balance

        Returns:
            Optional[int]: New balance, or None if the user is unknown
        """
        stmt = (
            update(User)
            .where(User.user_id == user_id)
            .values(gems_cents=User.gems_cents + amount, updated_at=now)
            .returning(User.gems_cents)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def set_streak(user: User, streak_day: int, claimed_at: datetime) -> None:
        user.streak_day = streak_day
        user.last_streak_claim_at = claimed_at
        user.updated_at = claimed_at

    @staticmethod
    def set_giveaway_status(giveaway: Giveaway, status: str, now: datetime) -> None:
        giveaway.status = status
        giveaway.updated_at = now


class DeleteData:
    @staticmethod
    async def delete_inventory_item(inventory_id: UUID, session: AsyncSession) -> int:
        """Delete an inventory row

        Returns:
            int: Number of rows deleted, 0 if another transaction got there first
        """
        stmt = (
            delete(Inventory)
            .where(Inventory.inventory_id == inventory_id)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount
