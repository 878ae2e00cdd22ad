from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .services.cheats import CheatEdits


class RankPublic(BaseModel):
    index: int
    tier: int
    tier_name: str
    display_name: str
    probability: float
    effective_probability: Optional[float] = None


class RunePublic(BaseModel):
    index: int
    name: str
    effect: str
    probability: float
    effective_probability: Optional[float] = None
    unlocked: bool = True


class BonusesPublic(BaseModel):
    luck: float
    points: float
    speed: float
    rune_speed: float
    rune_luck: float
    bulk_count: int
    rune_bulk_count: int
    cost_ratio: float
    ascension_bonus: float
    eternity: float
    animation_interval_ms: int
    rune_roll_time_ms: int
    rune_roll_cost: int


class UpgradePublic(BaseModel):
    key: str
    name: str
    level: int
    max_level: Optional[int] = None
    cost: Optional[int] = None
    affordable: bool


class MilestonePublic(BaseModel):
    id: str
    name: str
    description: str
    reward: float
    bonus_kind: Optional[str] = None
    bonus: float = 1.0
    unlock: Optional[str] = None
    met: bool
    claimed: bool


class PrestigePublic(BaseModel):
    roller_level: int
    roller_available: bool
    rune_level: int
    rune_available: bool
    rune_requirement: Optional[int] = None


class GameView(BaseModel):
    slot: str
    state: Dict[str, Any]
    bonuses: BonusesPublic
    upgrades: List[UpgradePublic]
    prestige: PrestigePublic
    current_rank: Optional[RankPublic] = None
    current_rune: Optional[RunePublic] = None
    rank_rolling: bool = False
    rune_rolling: bool = False
    rune_altar_open: bool = False
    auto_rolling: Dict[str, bool] = Field(default_factory=dict)
    claimable_milestones: List[str] = Field(default_factory=list)


class RollResponse(BaseModel):
    displayed_index: int
    displayed_name: str
    counts: Dict[int, int]
    samples: int
    points_gained: float
    cost: float = 0.0
    new_highest: bool = False
    total_points: float


class ClaimResponse(BaseModel):
    claimed: List[str]
    total_points: float


class AscendResponse(BaseModel):
    tiers_gained: int
    ascended_ranks: Dict[int, int]


class PrestigeResponse(BaseModel):
    roller_level: int
    rune_level: int


class AutoRollRequest(BaseModel):
    catalog: Literal["rank", "rune"]
    enabled: bool


class AutoRollResponse(BaseModel):
    catalog: str
    running: bool


class SaveBlob(BaseModel):
    save: str = Field(..., min_length=1)


class ResetRequest(BaseModel):
    confirm: str = Field(..., description="Must be the word RESET")


class CheatRequest(CheatEdits):
    """Cheat-mutable fields a debug client may overwrite."""
