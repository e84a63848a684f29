"""Read-side queries for the HTTP layer. Nothing here takes row locks or moves gems."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from src.config import EconomyConfig
from src.converter import DataConverter
from src.crud import CreateData, ReadData
from src.db import read_session, transaction
from src.errors import NotFound
from src.models.dc_models import CaseDetailModel, GiveawayDetailModel
from src.models.schema_models import (
    CaseContentSchema,
    CaseSchema,
    GiveawaySchema,
    InventorySchema,
    LeaderboardRowSchema,
    UserSchema,
    WinnerSchema,
)

DEFAULT_DISPLAY_NAME = "Steam User"


class Catalog:
    def __init__(self, session_factory: async_sessionmaker, config: EconomyConfig):
        self.session_factory = session_factory
        self.config = config
        self.converter = DataConverter()

    async def ensure_user(
        self, steam_id: str, display_name: Optional[str] = None, avatar: Optional[str] = None
    ) -> UserSchema:
        """Create the user on first sight with starting gems, otherwise refresh its profile

        Args:
            steam_id (str): External identity from the upstream session
            display_name (Optional[str]): Profile name, "Steam User" when missing
            avatar (Optional[str]): Profile picture URL

        Returns:
            UserSchema: The stored user
        """
        is_admin = steam_id in self.config.admin_steam_ids
        async with transaction(self.session_factory) as session:
            await CreateData.upsert_user(
                steam_id,
                display_name or DEFAULT_DISPLAY_NAME,
                avatar,
                self.config.starting_gems_cents,
                is_admin,
                session,
            )
            user = await ReadData.read_user_by_steam_id(steam_id, session)
            return UserSchema.model_validate(user)

    async def identify(
        self, steam_id: str, display_name: Optional[str] = None, avatar: Optional[str] = None
    ) -> UserSchema:
        """Return the stored user, writing only when it is new or its profile changed"""
        display_name = display_name or DEFAULT_DISPLAY_NAME
        is_admin = steam_id in self.config.admin_steam_ids
        async with read_session(self.session_factory) as session:
            user = await ReadData.read_user_by_steam_id(steam_id, session)
            if user is not None and (user.display_name, user.avatar, bool(user.is_admin)) == (
                display_name,
                avatar,
                is_admin,
            ):
                return UserSchema.model_validate(user)
        return await self.ensure_user(steam_id, display_name, avatar)

    async def list_cases(self) -> List[CaseSchema]:
        async with read_session(self.session_factory) as session:
            cases = await ReadData.read_active_cases(session)
            return [CaseSchema.model_validate(case) for case in cases]

    async def get_case(self, slug: str) -> CaseDetailModel:
        """Active case with its weighted contents, special items first"""
        async with read_session(self.session_factory) as session:
            case = await ReadData.read_case_by_slug(slug, session)
            if case is None:
                raise NotFound("case", slug)
            contents = await ReadData.read_case_contents(case.case_id, session)
            return CaseDetailModel(
                case=CaseSchema.model_validate(case),
                items=[CaseContentSchema.model_validate(content) for content in contents],
            )

    async def list_inventory(self, user_id: UUID) -> List[InventorySchema]:
        async with read_session(self.session_factory) as session:
            rows = await ReadData.read_inventory(user_id, session)
            return [InventorySchema.model_validate(row) for row in rows]

    async def leaderboard(self) -> List[LeaderboardRowSchema]:
        async with read_session(self.session_factory) as session:
            users = await ReadData.read_leaderboard(session)
            return [LeaderboardRowSchema.model_validate(user) for user in users]

    async def list_giveaways(self) -> List[GiveawaySchema]:
        async with read_session(self.session_factory) as session:
            giveaways = await ReadData.read_giveaways(session)
            return [GiveawaySchema.model_validate(giveaway) for giveaway in giveaways]

    async def get_giveaway(self, giveaway_id: UUID, user_id: Optional[UUID] = None) -> GiveawayDetailModel:
        """Giveaway with its total entries and, for a signed-in caller, their own entries

        Args:
            giveaway_id (UUID): To identify the giveaway
            user_id (Optional[UUID]): Caller, None for anonymous requests

        Returns:
            GiveawayDetailModel: Giveaway, total_entries and my_entries
        """
        async with read_session(self.session_factory) as session:
            giveaway = await ReadData.read_giveaway(giveaway_id, session)
            if giveaway is None:
                raise NotFound("giveaway", giveaway_id)
            total = await ReadData.read_total_entries(giveaway_id, session)
            mine = 0
            if user_id is not None:
                mine = await ReadData.read_user_entries(giveaway_id, user_id, session)
            return GiveawayDetailModel(
                giveaway=GiveawaySchema.model_validate(giveaway),
                total_entries=total,
                my_entries=mine,
            )

    async def recent_winners(self) -> List[WinnerSchema]:
        async with read_session(self.session_factory) as session:
            winners = await ReadData.read_recent_winners(session)
            return [self.converter.convert_winner(winner) for winner in winners]
