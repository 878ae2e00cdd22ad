from __future__ import annotations

import random
from typing import List, Sequence, TypeVar

from ..models.catalog import Rank, Rune

T = TypeVar("T")


def rank_effective_weights(ranks: Sequence[Rank], luck: float) -> List[float]:
    """Scale each rank by ``luck ** (i / (N - 1))``.

    The first rank is never boosted and the last gets the full multiplier, so
    rarer ranks stay rarer for any positive luck.
    """

    span = max(len(ranks) - 1, 1)
    return [rank.weight * luck ** (rank.index / span) for rank in ranks]


def rune_effective_weights(runes: Sequence[Rune], rune_luck: float) -> List[float]:
    """Scale each rune by ``rune_luck ** index`` using the raw index."""

    return [rune.weight * rune_luck**rune.index for rune in runes]


def weighted_choice(items: Sequence[T], weights: Sequence[float], rng: random.Random) -> T:
    """Cumulative-weight inversion over ``items``."""

    if not items:
        raise ValueError("Cannot sample from an empty catalog")

    remaining = rng.random() * sum(weights)
    for item, weight in zip(items, weights):
        remaining -= weight
        if remaining <= 0:
            return item
    # Rounding can leave a sliver of weight unconsumed.
    return items[0]


def sample_rank(ranks: Sequence[Rank], luck: float, rng: random.Random) -> Rank:
    return weighted_choice(ranks, rank_effective_weights(ranks, luck), rng)


def sample_rune(runes: Sequence[Rune], rune_luck: float, rng: random.Random) -> Rune:
    return weighted_choice(runes, rune_effective_weights(runes, rune_luck), rng)


def effective_probabilities(weights: Sequence[float]) -> List[float]:
    total = sum(weights)
    return [weight / total for weight in weights]
