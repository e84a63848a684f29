import logging
from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends

from src.authentication.session_identity import get_services, require_admin
from src.models.dc_models import RefreshReportModel, SettleModel
from src.models.schema_models import UserSchema
from src.services.container import EconomyServices
from src.services.market_refresh import refresh_stale_batch

admin_router = APIRouter(prefix="/api/admin")


class AdminAPI:
    @staticmethod
    @admin_router.post("/giveaways/{giveaway_id}/pick-winner", response_model=SettleModel)
    async def pick_winner(
        giveaway_id: UUID,
        admin: UserSchema = Depends(require_admin),
        services: EconomyServices = Depends(get_services),
    ):
        logging.info(f"admin {admin.steam_id} settles giveaway {giveaway_id}")
        return await services.ledger.settle_giveaway(giveaway_id)

    @staticmethod
    @admin_router.post("/market/refresh", response_model=RefreshReportModel)
    async def refresh_market(
        admin: UserSchema = Depends(require_admin),
        services: EconomyServices = Depends(get_services),
    ):
        report = await refresh_stale_batch(services.resolver, services.config.market_refresh_batch_size)
        return RefreshReportModel(**asdict(report))
