from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query

from ..schemas import RankPublic, RunePublic
from ..services.catalog import get_ranks, get_runes, unlocked_rune_indices
from ..services.sampler import effective_probabilities, rank_effective_weights, rune_effective_weights

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/ranks", response_model=list[RankPublic])
async def list_ranks(luck: float = Query(1.0, gt=0)) -> list[RankPublic]:
    """List all ranks with their base and luck-adjusted odds."""

    ranks = get_ranks()
    adjusted = effective_probabilities(rank_effective_weights(ranks, luck))
    return [
        RankPublic(
            index=rank.index,
            tier=rank.tier,
            tier_name=rank.tier_name,
            display_name=rank.display_name,
            probability=rank.probability,
            effective_probability=probability,
        )
        for rank, probability in zip(ranks, adjusted)
    ]


@router.get("/runes", response_model=list[RunePublic])
async def list_runes(
    rune_luck: float = Query(1.0, gt=0),
    collected: Optional[List[int]] = Query(None),
) -> list[RunePublic]:
    """List all runes; ``collected`` rank indices decide which are unlocked."""

    runes = get_runes()
    adjusted = effective_probabilities(rune_effective_weights(runes, rune_luck))
    unlocked = set(unlocked_rune_indices(collected or []))
    return [
        RunePublic(
            index=rune.index,
            name=rune.name,
            effect=rune.effect,
            probability=rune.probability,
            effective_probability=probability,
            unlocked=rune.index in unlocked,
        )
        for rune, probability in zip(runes, adjusted)
    ]
