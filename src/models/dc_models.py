from pydantic import BaseModel, Field
from enum import Enum
from uuid import UUID
from typing import Optional, List
from datetime import datetime

from src.models.schema_models import (
    CaseSchema,
    CaseContentSchema,
    GiveawaySchema,
    InventorySchema,
    LeaderboardRowSchema,
    UserSchema,
    WinnerSchema,
)


class GiveawayStatus(str, Enum):
    scheduled = "scheduled"
    active = "active"
    ended = "ended"  # set once by settlement


class PriceSource(str, Enum):
    market = "market"
    fallback = "fallback"  # deterministic price used while the market lookup fails


class OpenCaseRequestModel(BaseModel):
    case_slug: str = Field(min_length=1)


class EnterGiveawayRequestModel(BaseModel):
    entries: int


class DropItemModel(BaseModel):
    item_id: UUID
    name: str
    weapon: str
    rarity: str
    is_special: bool
    image_url: Optional[str] = None
    market_hash_base: str


class DropModel(BaseModel):
    inventory_id: UUID
    created_at: datetime
    item: DropItemModel
    wear: str
    float_value: float
    pattern_index: Optional[int] = None
    market_hash_name: str
    price_cents: int
    price_display: str


class OpenCaseModel(BaseModel):
    ok: bool = True
    balance_cents: int
    cost_cents: int
    drop: DropModel


class SellModel(BaseModel):
    ok: bool = True
    credit_cents: int
    balance_cents: int


class StreakModel(BaseModel):
    ok: bool = True
    reward_cents: int
    streak_day: int
    balance_cents: int
    last_streak_claim_at: datetime


class EntryModel(BaseModel):
    ok: bool = True
    bought_entries: int
    cost_cents: int
    balance_cents: int
    my_entries: int


class SettleModel(BaseModel):
    ok: bool = True
    replaced_previous_winner: bool = False
    winner: WinnerSchema


class MeModel(BaseModel):
    user: Optional[UserSchema] = None


class CaseListModel(BaseModel):
    cases: List[CaseSchema]


class CaseDetailModel(BaseModel):
    case: CaseSchema
    items: List[CaseContentSchema]


class InventoryListModel(BaseModel):
    items: List[InventorySchema]


class LeaderboardModel(BaseModel):
    leaderboard: List[LeaderboardRowSchema]


class GiveawayListModel(BaseModel):
    giveaways: List[GiveawaySchema]


class GiveawayDetailModel(BaseModel):
    giveaway: GiveawaySchema
    total_entries: int
    my_entries: int


class WinnerListModel(BaseModel):
    winners: List[WinnerSchema]


class RefreshReportModel(BaseModel):
    selected: int
    succeeded: int
    failed: int
