"""Immutable rank and rune tables."""

from __future__ import annotations

from functools import lru_cache
from typing import Iterable, List, Tuple

from ..models.catalog import Rank, Rune

RANK_COUNT = 100
RANKS_PER_TIER = 10
RANK_WEIGHT_BASE = 1.5

RUNE_COUNT = 10
RUNE_WEIGHT_BASE = 12.0
ALWAYS_UNLOCKED_RUNES = 3
# Collecting any rank of this tier opens the rune altar.
RUNE_ALTAR_TIER = 2

TIER_NAMES = [
    "Common",
    "Uncommon",
    "Rare",
    "Epic",
    "Legendary",
    "Mythic",
    "Divine",
    "Celestial",
    "Transcendent",
    "Ultimate",
]

RUNE_DEFINITIONS = [
    ("Rune of Beginning", "points"),
    ("Rune of Embers", "luck"),
    ("Rune of Tides", "speed"),
    ("Rune of Gales", "rune_speed"),
    ("Rune of Stone", "bulk"),
    ("Rune of Thunder", "rune_luck"),
    ("Rune of Frost", "rune_bulk"),
    ("Rune of Shadow", "cost_reduction"),
    ("Rune of Light", "ascension"),
    ("Rune of Eternity", "eternity"),
]


@lru_cache
def get_ranks() -> Tuple[Rank, ...]:
    """Build the rank table once; every rank is 1.5x rarer than the previous."""

    weights = [1 / RANK_WEIGHT_BASE**index for index in range(RANK_COUNT)]
    total = sum(weights)
    ranks = []
    for index, weight in enumerate(weights):
        tier, slot = divmod(index, RANKS_PER_TIER)
        tier_name = TIER_NAMES[tier]
        ranks.append(
            Rank(
                index=index,
                tier=tier,
                tier_slot=slot,
                tier_name=tier_name,
                display_name=f"{tier_name} {slot + 1}",
                weight=weight,
                probability=weight / total,
            )
        )
    return tuple(ranks)


@lru_cache
def get_runes() -> Tuple[Rune, ...]:
    """Build the rune table once; every rune is 12x rarer than the previous."""

    weights = [1 / RUNE_WEIGHT_BASE**index for index in range(RUNE_COUNT)]
    total = sum(weights)
    return tuple(
        Rune(
            index=index,
            name=name,
            effect=effect,
            weight=weight,
            probability=weight / total,
        )
        for index, ((name, effect), weight) in enumerate(zip(RUNE_DEFINITIONS, weights))
    )


def rank_tier(index: int) -> int:
    return index // RANKS_PER_TIER


def touched_tiers(collected_ranks: Iterable[int]) -> set[int]:
    return {rank_tier(index) for index in collected_ranks}


def unlocked_rune_indices(collected_ranks: Iterable[int]) -> List[int]:
    """Runes 0-2 are always available; rune ``k`` needs any rank of tier ``k``."""

    tiers = touched_tiers(collected_ranks)
    return [
        index
        for index in range(RUNE_COUNT)
        if index < ALWAYS_UNLOCKED_RUNES or index in tiers
    ]


def unlocked_runes(collected_ranks: Iterable[int]) -> List[Rune]:
    runes = get_runes()
    return [runes[index] for index in unlocked_rune_indices(collected_ranks)]


def rune_altar_open(collected_ranks: Iterable[int]) -> bool:
    return RUNE_ALTAR_TIER in touched_tiers(collected_ranks)
