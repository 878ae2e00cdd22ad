from __future__ import annotations

from typing import Annotated, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_serializer
from pydantic.alias_generators import to_camel


class PlayerState(BaseModel):
    """Everything a player has accumulated; the unit of persistence.

    Field names are snake_case in Python and camelCase in the save payload so
    that saves written by the browser build keep loading.
    """

    total_points: float = Field(default=0.0, ge=0)
    roll_count: NonNegativeInt = 0
    rune_roll_count: NonNegativeInt = 0

    rank_roll_counts: Dict[int, NonNegativeInt] = Field(default_factory=dict)
    # Editable through the cheat menu.
    rune_roll_counts: Dict[int, NonNegativeInt] = Field(default_factory=dict)
    # Only ever advanced by real rune rolls; milestone predicates read this one.
    legitimate_rune_roll_counts: Dict[int, NonNegativeInt] = Field(default_factory=dict)

    collected_ranks: Set[int] = Field(default_factory=set)
    collected_runes: Set[int] = Field(default_factory=set)
    ascended_ranks: Dict[int, Annotated[int, Field(ge=0, le=5)]] = Field(default_factory=dict)

    luck_level: NonNegativeInt = 0
    points_multi_level: NonNegativeInt = 0
    speed_level: NonNegativeInt = 0
    cost_reduction_level: int = Field(default=0, ge=0, le=5)
    bulk_roll_level: int = Field(default=0, ge=0, le=4)
    rune_bulk_roll_level: int = Field(default=0, ge=0, le=2)

    claimed_milestones: Set[str] = Field(default_factory=set)

    roller_prestige_level: NonNegativeInt = 0
    rune_prestige_level: NonNegativeInt = 0

    highest_rank: Optional[int] = Field(default=None, alias="highestRankIndex")
    highest_rank_roll: Optional[int] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_serializer("collected_ranks", "collected_runes", "claimed_milestones")
    def _sorted_members(self, members: Set) -> List:
        return sorted(members)

    def rank_count(self, index: int) -> int:
        return self.rank_roll_counts.get(index, 0)

    def rune_count(self, index: int) -> int:
        return self.rune_roll_counts.get(index, 0)

    def legitimate_rune_count(self, index: int) -> int:
        return self.legitimate_rune_roll_counts.get(index, 0)

    def ascension_tier(self, index: int) -> int:
        return self.ascended_ranks.get(index, 0)


def fresh_state() -> PlayerState:
    """Return the all-zero state used on first run and after a full reset."""

    return PlayerState()
