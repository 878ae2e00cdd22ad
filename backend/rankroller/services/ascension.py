"""Per-rank ascension tiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..models.player import PlayerState
from .catalog import RANK_COUNT

logger = logging.getLogger(__name__)

# Light rune bonus at which the ascension multiplier is unchanged.
ASCENSION_BONUS_BASELINE = 2.0


@dataclass(frozen=True)
class AscensionTier:
    level: int
    roll_threshold: int
    multiplier: float
    stars: int


ASCENSION_TIERS: List[AscensionTier] = [
    AscensionTier(level=1, roll_threshold=1_000, multiplier=2.0, stars=1),
    AscensionTier(level=2, roll_threshold=10_000, multiplier=3.0, stars=2),
    AscensionTier(level=3, roll_threshold=100_000, multiplier=5.0, stars=3),
    AscensionTier(level=4, roll_threshold=1_000_000, multiplier=8.0, stars=4),
    AscensionTier(level=5, roll_threshold=10_000_000, multiplier=25.0, stars=5),
]
MAX_ASCENSION = len(ASCENSION_TIERS)


def _check_rank(rank_index: int) -> None:
    if not 0 <= rank_index < RANK_COUNT:
        raise ValueError(f"Rank index {rank_index} is out of range")


def next_tier(state: PlayerState, rank_index: int) -> Optional[AscensionTier]:
    """Tier the rank would move to next, or ``None`` once it is maxed."""

    current = state.ascension_tier(rank_index)
    if current >= MAX_ASCENSION:
        return None
    return ASCENSION_TIERS[current]


def can_ascend(state: PlayerState, rank_index: int) -> bool:
    _check_rank(rank_index)
    tier = next_tier(state, rank_index)
    return tier is not None and state.rank_count(rank_index) >= tier.roll_threshold


def ascend(state: PlayerState, rank_index: int) -> bool:
    """Advance ``rank_index`` by exactly one tier if its roll count allows it."""

    if not can_ascend(state, rank_index):
        return False
    level = state.ascension_tier(rank_index) + 1
    state.ascended_ranks = {**state.ascended_ranks, rank_index: level}
    logger.info("Rank %d ascended to tier %d", rank_index, level)
    return True


def ascend_max(state: PlayerState, rank_index: int) -> int:
    """Apply single-tier ascensions while legal; returns the tiers gained."""

    gained = 0
    while ascend(state, rank_index):
        gained += 1
    return gained


def ascend_all(state: PlayerState) -> int:
    return sum(ascend_max(state, index) for index in range(RANK_COUNT))


def tier_multiplier(level: int) -> float:
    if level <= 0:
        return 1.0
    return ASCENSION_TIERS[min(level, MAX_ASCENSION) - 1].multiplier


def ascension_multiplier(state: PlayerState, rank_index: int, bonus: float) -> float:
    """Points multiplier for one rank; the Light rune bonus adds on top of the tier."""

    level = state.ascension_tier(rank_index)
    if level <= 0:
        return 1.0
    return tier_multiplier(level) + (bonus - ASCENSION_BONUS_BASELINE)


def stars(state: PlayerState, rank_index: int) -> int:
    level = state.ascension_tier(rank_index)
    return ASCENSION_TIERS[level - 1].stars if level > 0 else 0
