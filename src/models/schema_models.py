from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime


class UserSchema(BaseModel):
    user_id: UUID
    steam_id: str
    display_name: str
    avatar: Optional[str] = None
    gems_cents: int
    streak_day: int
    last_streak_claim_at: Optional[datetime] = None
    is_admin: bool

    class Config:
        from_attributes = True


class ItemSchema(BaseModel):
    item_id: UUID
    name: str
    weapon: str
    rarity: str
    is_special: bool
    image_url: Optional[str] = None
    market_hash_base: str

    class Config:
        from_attributes = True


class CaseSchema(BaseModel):
    case_id: UUID
    slug: str
    name: str
    image_url: Optional[str] = None
    case_price_cents: int
    key_price_cents: int
    active: bool

    class Config:
        from_attributes = True


class CaseContentSchema(BaseModel):
    weight: float
    item: ItemSchema

    class Config:
        from_attributes = True


class InventorySchema(BaseModel):
    inventory_id: UUID
    user_id: UUID
    wear: str
    float_value: float
    pattern_index: Optional[int] = None
    price_cents_at_drop: int
    created_at: datetime
    item: ItemSchema

    class Config:
        from_attributes = True


class GiveawaySchema(BaseModel):
    giveaway_id: UUID
    title: str
    prize_text: str
    tier_required: int
    starts_at: datetime
    ends_at: datetime
    status: str

    class Config:
        from_attributes = True


class WinnerSchema(BaseModel):
    giveaway_id: UUID
    user_id: UUID
    display_name: str
    avatar: Optional[str] = None
    title: str
    prize_text: str
    picked_at: datetime


class LeaderboardRowSchema(BaseModel):
    display_name: str
    avatar: Optional[str] = None
    gems_cents: int

    class Config:
        from_attributes = True
