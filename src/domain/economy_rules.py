"""Economy rules that are independent from HTTP and DB.

Rule of thumb:
- OK: cost arithmetic, validation, deterministic pricing, winner selection.
- Not OK: touching DB sessions, Redis, FastAPI, datetime.now(), etc.
"""

import hashlib
from datetime import datetime
from typing import Callable, Hashable, Optional, Sequence, Tuple

from src.domain.random_utils import weighted_choice, uniform_float

STREAK_CAP_DAYS = 7
MIN_ENTRIES_PER_PURCHASE = 1
MAX_ENTRIES_PER_PURCHASE = 10_000

# Fallback prices land in [$0.50, $500.00].
FALLBACK_MIN_CENTS = 50
FALLBACK_MAX_CENTS = 50_000


def open_cost(case_price_cents: int, key_price_cents: int) -> int:
    return int(case_price_cents or 0) + int(key_price_cents or 0)


def valid_entry_count(entries: int) -> bool:
    return MIN_ENTRIES_PER_PURCHASE <= entries <= MAX_ENTRIES_PER_PURCHASE


def entry_cost(entry_unit_cost_cents: int, entries: int) -> int:
    return int(entry_unit_cost_cents) * int(entries)


def streak_reward(base_bonus_cents: int, streak_day: int) -> int:
    """Reward for the given streak day; growth stops at day 7."""
    multiplier = min(max(streak_day, 0), STREAK_CAP_DAYS)
    return max(0, int(base_bonus_cents) * multiplier)


def claimed_on_same_day(last_claim_at: Optional[datetime], now: datetime) -> bool:
    if last_claim_at is None:
        return False
    return last_claim_at.date() == now.date()


def fallback_price_cents(market_hash_name: str) -> int:
    """Deterministic stand-in price for a market key.

    SHA-256 over the UTF-8 key, the first 8 bytes read as a big-endian
    integer, folded into [FALLBACK_MIN_CENTS, FALLBACK_MAX_CENTS]. The same
    key always yields the same price.
    """
    digest = hashlib.sha256(market_hash_name.encode("utf-8")).digest()
    span = FALLBACK_MAX_CENTS - FALLBACK_MIN_CENTS + 1
    return FALLBACK_MIN_CENTS + int.from_bytes(digest[:8], "big") % span


def pick_winner(
    entries: Sequence[Tuple[Hashable, int]],
    rand: Callable[[], float] = uniform_float,
) -> Hashable:
    """Draw a winner from (user_id, entry_count) pairs, weighted by entry count.

    Raises:
        EmptyPopulationError: No pair has a positive entry count
    """
    user_id, _ = weighted_choice(entries, lambda pair: pair[1], rand)
    return user_id
