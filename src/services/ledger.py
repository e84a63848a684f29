"""Economy ledger: every operation that moves gems.

- Each operation runs in exactly one ``transaction()``; any exception rolls
  the whole operation back.
- Target rows (inventory / giveaway) are locked with ``SELECT ... FOR UPDATE``
  before the balance is touched.
- Balances move by guarded relative updates; a debit that the balance does
  not cover changes nothing and raises ``InsufficientFunds``.
- Routers never touch sessions; they call this layer.
"""

import logging
from datetime import datetime
from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker
from uuid6 import uuid7

from src.config import EconomyConfig
from src.converter import DataConverter
from src.crud import CreateData, DeleteData, LockData, ReadData, UpdateData
from src.db import read_session, transaction
from src.domain.economy_rules import (
    claimed_on_same_day,
    entry_cost,
    open_cost,
    pick_winner,
    streak_reward,
    valid_entry_count,
)
from src.domain.item_rules import generate_attributes, market_hash_name
from src.domain.random_utils import EmptyPopulationError, uniform_float, uniform_int, weighted_choice
from src.errors import (
    AlreadyClaimedToday,
    CaseHasNoItems,
    GiveawayEnded,
    InsufficientFunds,
    InvalidEntryCount,
    NoEntries,
    NotFound,
    NotOwned,
)
from src.models.dc_models import (
    EntryModel,
    GiveawayStatus,
    OpenCaseModel,
    SellModel,
    SettleModel,
    StreakModel,
)
from src.models.schema_models import WinnerSchema
from src.models.schemas import Inventory, utcnow
from src.services.price_cache import PriceResolver

logger = logging.getLogger(__name__)


class EconomyLedger:
    def __init__(
        self,
        session_factory: async_sessionmaker,
        config: EconomyConfig,
        resolver: PriceResolver,
        rand: Callable[[], float] = uniform_float,
        rand_int: Callable[[int, int], int] = uniform_int,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.config = config
        self.resolver = resolver
        self.rand = rand
        self.rand_int = rand_int
        self.clock = clock
        self.converter = DataConverter()

    async def _debit(self, user_id: UUID, cost: int, now: datetime, session) -> int:
        balance = await UpdateData.debit_balance(user_id, cost, now, session)
        if balance is not None:
            return int(balance)
        user = await ReadData.read_user(user_id, session)
        if user is None:
            raise NotFound("user", user_id)
        raise InsufficientFunds(int(user.gems_cents), cost)

    async def _credit(self, user_id: UUID, amount: int, now: datetime, session) -> int:
        balance = await UpdateData.credit_balance(user_id, amount, now, session)
        if balance is None:
            raise NotFound("user", user_id)
        return int(balance)

    async def open_case(self, user_id: UUID, case_slug: str) -> OpenCaseModel:
        """Charge the user for a case and add the dropped item to their inventory

        The item, its attributes and its price are decided before the balance
        row is locked, so a slow market lookup never extends the lock.

        Args:
            user_id (UUID): Authenticated user
            case_slug (str): Slug of an active case

        Raises:
            NotFound: Unknown case or user
            CaseHasNoItems: The case has no weighted contents
            InsufficientFunds: Balance below case price + key price

        Returns:
            OpenCaseModel: New balance, cost and the drop with its frozen price
        """
        slug = (case_slug or "").strip()
        async with read_session(self.session_factory) as session:
            case = await ReadData.read_case_by_slug(slug, session)
            if case is None:
                raise NotFound("case", slug)
            cost = open_cost(case.case_price_cents, case.key_price_cents)
            contents = await ReadData.read_case_contents(case.case_id, session)
            user = await ReadData.read_user(user_id, session)
            if user is None:
                raise NotFound("user", user_id)
            if int(user.gems_cents) < cost:
                raise InsufficientFunds(int(user.gems_cents), cost)

        try:
            picked = weighted_choice(contents, lambda content: content.weight, self.rand).item
        except EmptyPopulationError as e:
            raise CaseHasNoItems(f"case {slug} has no items") from e
        attributes = generate_attributes(picked.is_special, self.rand, self.rand_int)
        hash_name = market_hash_name(picked.market_hash_base, attributes.wear)
        price_cents = await self.resolver.resolve_price(hash_name)

        now = self.clock()
        async with transaction(self.session_factory) as session:
            balance = await self._debit(user_id, cost, now, session)
            inventory = await CreateData.add_inventory_item(
                Inventory(
                    inventory_id=uuid7(),
                    user_id=user_id,
                    item_id=picked.item_id,
                    wear=attributes.wear,
                    float_value=attributes.float_value,
                    pattern_index=attributes.pattern_index,
                    price_cents_at_drop=price_cents,
                    created_at=now,
                ),
                session,
            )
            result = OpenCaseModel(
                balance_cents=balance,
                cost_cents=cost,
                drop=self.converter.convert_inventory_to_drop(inventory, picked, hash_name),
            )

        logger.info(f"user {user_id} opened {slug}: {hash_name} worth {price_cents} for {cost}")
        return result

    async def sell_item(self, user_id: UUID, inventory_id: UUID) -> SellModel:
        """Turn an inventory item back into gems at the price recorded at drop time

        Args:
            user_id (UUID): Authenticated user
            inventory_id (UUID): Inventory row to sell

        Raises:
            NotFound: The inventory row does not exist
            NotOwned: The inventory row belongs to another user

        Returns:
            SellModel: Credited amount and new balance
        """
        now = self.clock()
        async with transaction(self.session_factory) as session:
            inventory = await LockData.lock_inventory_item(inventory_id, session)
            if inventory is None:
                raise NotFound("inventory", inventory_id)
            if inventory.user_id != user_id:
                raise NotOwned(f"inventory {inventory_id} is not owned by {user_id}")

            credit = int(inventory.price_cents_at_drop or 0)
            if await DeleteData.delete_inventory_item(inventory_id, session) == 0:
                raise NotFound("inventory", inventory_id)
            balance = await self._credit(user_id, credit, now, session)

        logger.info(f"user {user_id} sold {inventory_id} for {credit}")
        return SellModel(credit_cents=credit, balance_cents=balance)

    async def claim_streak(self, user_id: UUID) -> StreakModel:
        """Pay the daily streak bonus, at most once per UTC calendar day

        Raises:
            NotFound: Unknown user
            AlreadyClaimedToday: The last claim is on the current day

        Returns:
            StreakModel: Reward, new streak day and balance
        """
        now = self.clock()
        async with transaction(self.session_factory) as session:
            user = await LockData.lock_user(user_id, session)
            if user is None:
                raise NotFound("user", user_id)
            if claimed_on_same_day(user.last_streak_claim_at, now):
                raise AlreadyClaimedToday("streak already claimed today")

            streak_day = int(user.streak_day or 0) + 1
            reward = streak_reward(self.config.streak_bonus_cents, streak_day)
            UpdateData.set_streak(user, streak_day, now)
            balance = await self._credit(user_id, reward, now, session)

        logger.info(f"user {user_id} claimed streak day {streak_day}: +{reward}")
        return StreakModel(
            reward_cents=reward,
            streak_day=streak_day,
            balance_cents=balance,
            last_streak_claim_at=now,
        )

    async def enter_giveaway(self, user_id: UUID, giveaway_id: UUID, entries: int) -> EntryModel:
        """Buy giveaway entries; they add to the user's existing count

        Args:
            user_id (UUID): Authenticated user
            giveaway_id (UUID): Giveaway to enter
            entries (int): Entries to buy, 1..10000

        Raises:
            InvalidEntryCount: entries out of range
            NotFound: Unknown giveaway or user
            GiveawayEnded: The giveaway has been settled
            InsufficientFunds: Balance below entries * unit cost

        Returns:
            EntryModel: Cost, new balance and the cumulative entry count
        """
        if not valid_entry_count(entries):
            raise InvalidEntryCount(f"entries must be between 1 and 10000, got {entries}")
        cost = entry_cost(self.config.giveaway_entry_cost_cents, entries)

        now = self.clock()
        async with transaction(self.session_factory) as session:
            giveaway = await LockData.lock_giveaway(giveaway_id, session)
            if giveaway is None:
                raise NotFound("giveaway", giveaway_id)
            if giveaway.status == GiveawayStatus.ended.value:
                raise GiveawayEnded(f"giveaway {giveaway_id} has ended")

            balance = await self._debit(user_id, cost, now, session)
            await CreateData.add_giveaway_entries(giveaway_id, user_id, entries, session)
            my_entries = await ReadData.read_user_entries(giveaway_id, user_id, session)

        logger.info(f"user {user_id} bought {entries} entries in {giveaway_id} for {cost}")
        return EntryModel(
            bought_entries=entries,
            cost_cents=cost,
            balance_cents=balance,
            my_entries=my_entries,
        )

    async def settle_giveaway(self, giveaway_id: UUID) -> SettleModel:
        """Draw the winner weighted by entry count and end the giveaway

        Running it again re-draws and replaces the recorded winner in the same
        atomic step; the replacement is logged.

        Raises:
            NotFound: Unknown giveaway
            NoEntries: Nobody holds a positive number of entries

        Returns:
            SettleModel: The recorded winner
        """
        now = self.clock()
        async with transaction(self.session_factory) as session:
            giveaway = await LockData.lock_giveaway(giveaway_id, session)
            if giveaway is None:
                raise NotFound("giveaway", giveaway_id)

            pairs = await ReadData.read_positive_entries(giveaway_id, session)
            if not pairs:
                raise NoEntries(f"giveaway {giveaway_id} has no entries")
            winner_id = pick_winner(pairs, self.rand)

            previous = await ReadData.read_winner(giveaway_id, session)
            replaced = previous is not None
            if replaced:
                logger.warning(
                    f"giveaway {giveaway_id} settled again: winner {previous.user_id} replaced by {winner_id}"
                )

            await CreateData.upsert_winner(giveaway_id, winner_id, now, session)
            UpdateData.set_giveaway_status(giveaway, GiveawayStatus.ended.value, now)
            winner_user = await ReadData.read_user(winner_id, session)
            winner = WinnerSchema(
                giveaway_id=giveaway_id,
                user_id=winner_id,
                display_name=winner_user.display_name,
                avatar=winner_user.avatar,
                title=giveaway.title,
                prize_text=giveaway.prize_text,
                picked_at=now,
            )

        logger.info(f"giveaway {giveaway_id} settled, winner {winner_id}")
        return SettleModel(replaced_previous_winner=replaced, winner=winner)
