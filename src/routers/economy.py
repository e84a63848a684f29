from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from src.authentication.session_identity import current_user, get_services, optional_user
from src.models.dc_models import (
    CaseDetailModel,
    CaseListModel,
    EnterGiveawayRequestModel,
    EntryModel,
    GiveawayDetailModel,
    GiveawayListModel,
    InventoryListModel,
    LeaderboardModel,
    MeModel,
    OpenCaseModel,
    OpenCaseRequestModel,
    SellModel,
    StreakModel,
    WinnerListModel,
)
from src.models.schema_models import UserSchema
from src.services.container import EconomyServices

economy_router = APIRouter()


class HealthAPI:
    @staticmethod
    @economy_router.get("/healthz")
    async def healthz():
        return {"ok": True}


class UserAPI:
    @staticmethod
    @economy_router.get("/api/me", response_model=MeModel)
    async def me(user: Optional[UserSchema] = Depends(optional_user)):
        return MeModel(user=user)

    @staticmethod
    @economy_router.get("/api/leaderboard", response_model=LeaderboardModel)
    async def leaderboard(services: EconomyServices = Depends(get_services)):
        return LeaderboardModel(leaderboard=await services.catalog.leaderboard())

    @staticmethod
    @economy_router.post("/api/streak/claim", response_model=StreakModel)
    async def claim_streak(
        user: UserSchema = Depends(current_user),
        services: EconomyServices = Depends(get_services),
    ):
        return await services.ledger.claim_streak(user.user_id)


class CaseAPI:
    @staticmethod
    @economy_router.get("/api/cases", response_model=CaseListModel)
    async def list_cases(services: EconomyServices = Depends(get_services)):
        return CaseListModel(cases=await services.catalog.list_cases())

    @staticmethod
    @economy_router.get("/api/cases/{slug}", response_model=CaseDetailModel)
    async def get_case(slug: str, services: EconomyServices = Depends(get_services)):
        return await services.catalog.get_case(slug)

    @staticmethod
    @economy_router.post("/api/open", response_model=OpenCaseModel)
    async def open_case(
        request: OpenCaseRequestModel,
        user: UserSchema = Depends(current_user),
        services: EconomyServices = Depends(get_services),
    ):
        return await services.ledger.open_case(user.user_id, request.case_slug)


class InventoryAPI:
    @staticmethod
    @economy_router.get("/api/inventory", response_model=InventoryListModel)
    async def list_inventory(
        user: UserSchema = Depends(current_user),
        services: EconomyServices = Depends(get_services),
    ):
        return InventoryListModel(items=await services.catalog.list_inventory(user.user_id))

    @staticmethod
    @economy_router.post("/api/inventory/{inventory_id}/sell", response_model=SellModel)
    async def sell_item(
        inventory_id: UUID,
        user: UserSchema = Depends(current_user),
        services: EconomyServices = Depends(get_services),
    ):
        return await services.ledger.sell_item(user.user_id, inventory_id)


class GiveawayAPI:
    @staticmethod
    @economy_router.get("/api/giveaways", response_model=GiveawayListModel)
    async def list_giveaways(services: EconomyServices = Depends(get_services)):
        return GiveawayListModel(giveaways=await services.catalog.list_giveaways())

    @staticmethod
    @economy_router.get("/api/giveaways/{giveaway_id}", response_model=GiveawayDetailModel)
    async def get_giveaway(
        giveaway_id: UUID,
        user: Optional[UserSchema] = Depends(optional_user),
        services: EconomyServices = Depends(get_services),
    ):
        return await services.catalog.get_giveaway(giveaway_id, user.user_id if user else None)

    @staticmethod
    @economy_router.post("/api/giveaways/{giveaway_id}/enter", response_model=EntryModel)
    async def enter_giveaway(
        giveaway_id: UUID,
        request: EnterGiveawayRequestModel,
        user: UserSchema = Depends(current_user),
        services: EconomyServices = Depends(get_services),
    ):
        return await services.ledger.enter_giveaway(user.user_id, giveaway_id, request.entries)

    @staticmethod
    @economy_router.get("/api/winners", response_model=WinnerListModel)
    async def recent_winners(services: EconomyServices = Depends(get_services)):
        return WinnerListModel(winners=await services.catalog.recent_winners())
