"""Debug edits.

Only the cheat-mutable fields can be touched here. In particular rune counts
are written to ``rune_roll_counts`` and never to the legitimate counters, so
milestones gated on real rune rolls cannot be unlocked this way.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from pydantic import BaseModel, Field, NonNegativeInt

from ..models.player import PlayerState

logger = logging.getLogger(__name__)


class CheatEdits(BaseModel):
    total_points: Optional[float] = Field(default=None, ge=0)
    roll_count: Optional[NonNegativeInt] = None
    luck_level: Optional[NonNegativeInt] = None
    points_multi_level: Optional[NonNegativeInt] = None
    speed_level: Optional[NonNegativeInt] = None
    rune_roll_count: Optional[NonNegativeInt] = None
    rune_roll_counts: Dict[int, NonNegativeInt] = Field(default_factory=dict)


def apply_cheats(state: PlayerState, edits: CheatEdits) -> None:
    bad = [index for index in edits.rune_roll_counts if not 0 <= index <= 9]
    if bad:
        raise ValueError(f"Rune index {bad[0]} is out of range")

    changes = edits.model_dump(exclude_none=True, exclude={"rune_roll_counts"})
    for name, value in changes.items():
        setattr(state, name, value)

    if edits.rune_roll_counts:
        counts = dict(state.rune_roll_counts)
        counts.update(edits.rune_roll_counts)
        state.rune_roll_counts = counts

    logger.warning(
        "Cheat edits applied: fields=%s runes=%s", sorted(changes), sorted(edits.rune_roll_counts)
    )
