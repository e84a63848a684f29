"""Random primitives shared by case drops and giveaway draws.

Randomness comes from ``random.SystemRandom`` (OS entropy), so concurrent
workers never share a seed. Every consumer accepts a ``rand`` callable so tests
can inject a fixed sequence of draws.
"""

import random
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")

RNG = random.SystemRandom()


class EmptyPopulationError(ValueError):
    """Raised when there is nothing with a positive weight to draw from."""


def uniform_float() -> float:
    """Return a float in [0, 1)."""
    return RNG.random()


def uniform_int(lo: int, hi: int) -> int:
    """Return an integer in [lo, hi], both ends inclusive."""
    if lo > hi:
        raise ValueError(f"empty range [{lo}, {hi}]")
    return RNG.randint(lo, hi)


def weighted_choice(
    items: Sequence[T],
    weight_of: Callable[[T], float],
    rand: Callable[[], float] = uniform_float,
) -> T:
    """Pick one item with probability proportional to its weight.

    The draw ``u = rand() * total`` is walked against cumulative weights and
    the first item whose cumulative sum exceeds ``u`` wins, so equal draws
    always resolve to the earlier item. Items with a weight <= 0 are never
    selected.

    Args:
        items (Sequence[T]): Ordered population
        weight_of (Callable[[T], float]): Weight accessor
        rand (Callable[[], float]): Source of draws in [0, 1)

    Raises:
        EmptyPopulationError: The population is empty or no weight is positive

    Returns:
        T: The selected item
    """
    weighted = [(item, float(weight_of(item))) for item in items]
    total = sum(weight for _, weight in weighted if weight > 0)
    if not weighted or total <= 0:
        raise EmptyPopulationError("no item with a positive weight")

    target = rand() * total
    cumulative = 0.0
    last_positive = None
    for item, weight in weighted:
        if weight <= 0:
            continue
        cumulative += weight
        last_positive = item
        if cumulative > target:
            return item
    # float rounding can leave target == total
    return last_positive
