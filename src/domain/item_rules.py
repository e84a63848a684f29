"""Item attribute rules: wear bands, pattern index and market hash names."""

from dataclasses import dataclass
from typing import Callable, Optional

from src.domain.random_utils import uniform_float, uniform_int

FACTORY_NEW = "Factory New"
MINIMAL_WEAR = "Minimal Wear"
FIELD_TESTED = "Field-Tested"
WELL_WORN = "Well-Worn"
BATTLE_SCARRED = "Battle-Scarred"

# Upper bounds are exclusive; a value equal to a bound belongs to the next band.
WEAR_BANDS = (
    (0.07, FACTORY_NEW),
    (0.15, MINIMAL_WEAR),
    (0.38, FIELD_TESTED),
    (0.45, WELL_WORN),
    (1.0, BATTLE_SCARRED),
)
WEAR_NAMES = tuple(name for _, name in WEAR_BANDS)

PATTERN_INDEX_MIN = 0
PATTERN_INDEX_MAX = 999


@dataclass(frozen=True)
class DropAttributes:
    wear: str
    float_value: float
    pattern_index: Optional[int]


def wear_from_float(value: float) -> str:
    """Map a float in [0, 1) to its wear band."""
    if not 0.0 <= value < 1.0:
        raise ValueError(f"float value out of range: {value}")
    for upper, name in WEAR_BANDS:
        if value < upper:
            return name
    return BATTLE_SCARRED


def pattern_index(
    is_special: bool, rand_int: Callable[[int, int], int] = uniform_int
) -> Optional[int]:
    """Return a pattern index for special items, ``None`` for everything else.

    ``None`` and ``0`` are different: 0 is a valid pattern.
    """
    if not is_special:
        return None
    return rand_int(PATTERN_INDEX_MIN, PATTERN_INDEX_MAX)


def market_hash_name(market_hash_base: str, wear: str) -> str:
    """Build the priced lookup key, e.g. ``AK-47 | Redline (Field-Tested)``."""
    return f"{market_hash_base} ({wear})"


def generate_attributes(
    is_special: bool,
    rand: Callable[[], float] = uniform_float,
    rand_int: Callable[[int, int], int] = uniform_int,
) -> DropAttributes:
    float_value = rand()
    return DropAttributes(
        wear=wear_from_float(float_value),
        float_value=float_value,
        pattern_index=pattern_index(is_special, rand_int),
    )
