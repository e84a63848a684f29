from datetime import datetime, timezone

from sqlalchemy import ForeignKey
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.schema import Column, Index
from sqlalchemy.types import BigInteger, Boolean, DateTime, Float, Integer, String, Uuid
from uuid6 import uuid7


def utcnow() -> datetime:
    """Naive UTC timestamp used for every stored datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"
    user_id = Column(Uuid, primary_key=True, default=uuid7)
    steam_id = Column(String, unique=True, nullable=False)
    display_name = Column(String, nullable=False, default="Steam User")
    avatar = Column(String, nullable=True)
    gems_cents = Column(BigInteger, nullable=False, default=0)
    streak_day = Column(Integer, nullable=False, default=0)
    last_streak_claim_at = Column(DateTime, nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)


class Case(Base):
    __tablename__ = "cases"
    case_id = Column(Uuid, primary_key=True, default=uuid7)
    slug = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    case_price_cents = Column(BigInteger, nullable=False, default=0)
    key_price_cents = Column(BigInteger, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)

    contents = relationship(
        "CaseItem",
        back_populates="case",
        cascade="all, delete-orphan",
    )


class Item(Base):
    __tablename__ = "items"
    item_id = Column(Uuid, primary_key=True, default=uuid7)
    name = Column(String, nullable=False)
    weapon = Column(String, nullable=False)
    rarity = Column(String, nullable=False)
    is_special = Column(Boolean, nullable=False, default=False)
    image_url = Column(String, nullable=True)
    market_hash_base = Column(String, nullable=False)


class CaseItem(Base):
    __tablename__ = "case_items"
    case_id = Column(Uuid, ForeignKey("cases.case_id", ondelete="CASCADE"), primary_key=True)
    item_id = Column(Uuid, ForeignKey("items.item_id", ondelete="CASCADE"), primary_key=True)
    weight = Column(Float, nullable=False, default=1.0)

    case = relationship("Case", back_populates="contents")
    item = relationship("Item")


class Inventory(Base):
    __tablename__ = "inventory"
    inventory_id = Column(Uuid, primary_key=True, default=uuid7)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Uuid, ForeignKey("items.item_id"), nullable=False)
    wear = Column(String, nullable=False)
    float_value = Column(Float, nullable=False)
    pattern_index = Column(Integer, nullable=True)
    price_cents_at_drop = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    item = relationship("Item")

    __table_args__ = (Index("idx_inventory_user_created", "user_id", "created_at"),)


class MarketPriceCache(Base):
    __tablename__ = "market_price_cache"
    market_hash_name = Column(String, primary_key=True)
    price_cents = Column(BigInteger, nullable=False)
    source = Column(String, nullable=False, default="market")  # market / fallback
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("idx_market_price_cache_updated", "updated_at"),)


class Giveaway(Base):
    __tablename__ = "giveaways"
    giveaway_id = Column(Uuid, primary_key=True, default=uuid7)
    title = Column(String, nullable=False)
    prize_text = Column(String, nullable=False)
    tier_required = Column(Integer, nullable=False, default=0)
    starts_at = Column(DateTime, nullable=False)
    ends_at = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default="scheduled")  # scheduled / active / ended
    updated_at = Column(DateTime, default=utcnow)


class GiveawayEntry(Base):
    __tablename__ = "giveaway_entries"
    giveaway_id = Column(Uuid, ForeignKey("giveaways.giveaway_id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    entries = Column(Integer, nullable=False, default=0)


class GiveawayWinner(Base):
    __tablename__ = "giveaway_winners"
    giveaway_id = Column(Uuid, ForeignKey("giveaways.giveaway_id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    picked_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User")
    giveaway = relationship("Giveaway")
