"""Bulk rolls: sample, aggregate, and fold the outcome into the player state."""

from __future__ import annotations

import logging
import math
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from ..models.catalog import Rank, Rune
from ..models.player import PlayerState
from .ascension import ascension_multiplier
from .bonuses import Bonuses, compute_bonuses
from .catalog import get_ranks, get_runes, rune_altar_open, unlocked_runes
from .sampler import (
    rank_effective_weights,
    rune_effective_weights,
    sample_rank,
    sample_rune,
    weighted_choice,
)

logger = logging.getLogger(__name__)


@dataclass
class RollResult:
    displayed: Union[Rank, Rune]
    counts: Dict[int, int] = field(default_factory=dict)
    samples: int = 0
    points_gained: float = 0.0
    cost: float = 0.0
    new_highest: bool = False


def base_points(rank_index: int) -> int:
    """Ordinal value for early ranks, ``2 ** (n / 4)`` once that overtakes it."""

    rank_number = rank_index + 1
    return max(rank_number, int(math.floor(2 ** (rank_number / 4))))


def rank_points(state: PlayerState, rank_index: int, bonuses: Bonuses) -> float:
    """Points awarded for one sample of ``rank_index``."""

    multiplier = ascension_multiplier(state, rank_index, bonuses.ascension_bonus)
    return float(math.floor(base_points(rank_index) * multiplier * bonuses.points))


def preview_rank(state: PlayerState, rng: random.Random, bonuses: Optional[Bonuses] = None) -> Rank:
    """Cosmetic sample for animation frames; leaves the state untouched."""

    bonuses = bonuses or compute_bonuses(state)
    return sample_rank(get_ranks(), bonuses.luck, rng)


def preview_rune(state: PlayerState, rng: random.Random, bonuses: Optional[Bonuses] = None) -> Rune:
    bonuses = bonuses or compute_bonuses(state)
    return sample_rune(unlocked_runes(state.collected_ranks), bonuses.rune_luck, rng)


def roll_ranks(state: PlayerState, rng: random.Random, bonuses: Optional[Bonuses] = None) -> RollResult:
    """Draw ``bulk_count`` ranks and record every one of them."""

    bonuses = bonuses or compute_bonuses(state)
    ranks = get_ranks()
    weights = rank_effective_weights(ranks, bonuses.luck)

    counts = Counter(weighted_choice(ranks, weights, rng).index for _ in range(bonuses.bulk_count))
    best = ranks[max(counts)]

    points = sum(rank_points(state, index, bonuses) * count for index, count in counts.items())

    merged = dict(state.rank_roll_counts)
    for index, count in counts.items():
        merged[index] = merged.get(index, 0) + count

    state.roll_count += bonuses.bulk_count
    state.total_points += points
    state.rank_roll_counts = merged
    state.collected_ranks = state.collected_ranks | set(counts)

    new_highest = state.highest_rank is None or best.index > state.highest_rank
    if new_highest:
        state.highest_rank = best.index
        state.highest_rank_roll = state.roll_count
        logger.info("New highest rank %s at roll %d", best.display_name, state.roll_count)

    return RollResult(
        displayed=best,
        counts=dict(counts),
        samples=bonuses.bulk_count,
        points_gained=points,
        new_highest=new_highest,
    )


def rune_roll_blocker(state: PlayerState, bonuses: Optional[Bonuses] = None) -> Optional[str]:
    """Reason a rune roll cannot start right now, or ``None`` when it can."""

    bonuses = bonuses or compute_bonuses(state)
    if not rune_altar_open(state.collected_ranks):
        return "The rune altar opens after your first Rare rank"
    if state.total_points < bonuses.rune_roll_cost:
        return "Not enough points for a rune roll"
    return None


def pay_for_rune_roll(state: PlayerState, bonuses: Optional[Bonuses] = None) -> bool:
    """Deduct the rune roll cost; rejected with no change when blocked."""

    bonuses = bonuses or compute_bonuses(state)
    if rune_roll_blocker(state, bonuses) is not None:
        return False
    state.total_points -= bonuses.rune_roll_cost
    return True


def draw_runes(state: PlayerState, rng: random.Random, bonuses: Bonuses) -> RollResult:
    """Draw an already paid-for batch of runes and record every one of them."""

    runes = unlocked_runes(state.collected_ranks)
    weights = rune_effective_weights(runes, bonuses.rune_luck)

    counts = Counter(weighted_choice(runes, weights, rng).index for _ in range(bonuses.rune_bulk_count))
    best = get_runes()[max(counts)]

    cheat_counts = dict(state.rune_roll_counts)
    legitimate_counts = dict(state.legitimate_rune_roll_counts)
    for index, count in counts.items():
        cheat_counts[index] = cheat_counts.get(index, 0) + count
        legitimate_counts[index] = legitimate_counts.get(index, 0) + count

    state.rune_roll_count += bonuses.rune_bulk_count
    state.rune_roll_counts = cheat_counts
    state.legitimate_rune_roll_counts = legitimate_counts
    state.collected_runes = state.collected_runes | set(counts)

    return RollResult(
        displayed=best,
        counts=dict(counts),
        samples=bonuses.rune_bulk_count,
        cost=bonuses.rune_roll_cost,
    )


def roll_runes(
    state: PlayerState, rng: random.Random, bonuses: Optional[Bonuses] = None
) -> Optional[RollResult]:
    """Pay for and draw one rune batch. Returns ``None`` when the roll is blocked."""

    bonuses = bonuses or compute_bonuses(state)
    if not pay_for_rune_roll(state, bonuses):
        return None
    return draw_runes(state, rng, bonuses)
