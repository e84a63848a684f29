from datetime import datetime

import pytest

from src.domain.economy_rules import (
    FALLBACK_MAX_CENTS,
    FALLBACK_MIN_CENTS,
    claimed_on_same_day,
    entry_cost,
    fallback_price_cents,
    open_cost,
    pick_winner,
    streak_reward,
    valid_entry_count,
)
from src.domain.random_utils import EmptyPopulationError


def test_open_cost_adds_case_and_key():
    assert open_cost(250, 550) == 800
    assert open_cost(0, 0) == 0


@pytest.mark.parametrize("entries, valid", [(0, False), (1, True), (10_000, True), (10_001, False), (-5, False)])
def test_valid_entry_count(entries, valid):
    assert valid_entry_count(entries) is valid


def test_entry_cost():
    assert entry_cost(1_000, 3) == 3_000


@pytest.mark.parametrize("day, reward", [(1, 750), (2, 1500), (7, 5250), (8, 5250), (30, 5250)])
def test_streak_reward_caps_at_day_seven(day, reward):
    assert streak_reward(750, day) == reward


def test_claimed_on_same_day():
    now = datetime(2026, 3, 1, 23, 59)
    assert claimed_on_same_day(None, now) is False
    assert claimed_on_same_day(datetime(2026, 3, 1, 0, 0), now) is True
    assert claimed_on_same_day(datetime(2026, 2, 28, 23, 59), now) is False


def test_fallback_price_is_stable_and_bounded():
    keys = [f"Item {i} (Field-Tested)" for i in range(200)]
    prices = [fallback_price_cents(key) for key in keys]
    assert prices == [fallback_price_cents(key) for key in keys]
    assert all(FALLBACK_MIN_CENTS <= p <= FALLBACK_MAX_CENTS for p in prices)
    assert len(set(prices)) > 1


def test_pick_winner_split_follows_entry_counts():
    entries = [("u1", 3), ("u2", 7)]
    wins = {"u1": 0, "u2": 0}
    for i in range(10_000):
        wins[pick_winner(entries, lambda: i / 10_000)] += 1
    # one draw sits exactly on the 3:7 boundary
    assert abs(wins["u1"] - 3_000) <= 1
    assert wins["u1"] + wins["u2"] == 10_000


def test_pick_winner_ignores_non_positive_counts():
    assert pick_winner([("u1", 0), ("u2", 4)], lambda: 0.0) == "u2"


def test_pick_winner_without_entries():
    with pytest.raises(EmptyPopulationError):
        pick_winner([("u1", 0)], lambda: 0.5)
