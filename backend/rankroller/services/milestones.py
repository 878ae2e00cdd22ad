"""Milestone catalogue, predicate evaluation and claiming."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import AbstractSet, Callable, Dict, FrozenSet, List, Mapping, Optional

from ..models.player import PlayerState
from .catalog import RUNE_DEFINITIONS, TIER_NAMES

logger = logging.getLogger(__name__)

BONUS_KINDS = ("luck", "points", "speed", "rune_speed", "rune_luck")

SLOW_AUTO_ROLL = "slow_auto_roll"
FAST_AUTO_ROLL = "fast_auto_roll"
SLOW_RUNE_AUTO_ROLL = "slow_rune_auto_roll"
FAST_RUNE_AUTO_ROLL = "fast_rune_auto_roll"

# Ids predate the Transcendent rename of tier 8 and stay stable for old saves.
TIER_KEYS = [
    "common",
    "uncommon",
    "rare",
    "epic",
    "legendary",
    "mythic",
    "divine",
    "celestial",
    "cosmic",
    "ultimate",
]

TIER_COMPLETION_BONUSES = [
    ("points", 1.1),
    ("speed", 1.5),
    ("speed", 1.5),
    ("points", 5.0),
    ("luck", 3.0),
    ("points", 5.0),
    ("luck", 5.0),
    ("speed", 3.0),
    ("points", 10.0),
    ("luck", 10.0),
]


@dataclass(frozen=True)
class MilestoneSnapshot:
    """Read-only view of the state that milestone predicates may inspect."""

    roll_count: int
    collected_ranks: FrozenSet[int]
    ascended_ranks: Mapping[int, int]
    collected_runes: FrozenSet[int]
    rune_roll_counts: Mapping[int, int]
    legitimate_rune_roll_counts: Mapping[int, int]

    @classmethod
    def of(cls, state: PlayerState) -> "MilestoneSnapshot":
        return cls(
            roll_count=state.roll_count,
            collected_ranks=frozenset(state.collected_ranks),
            ascended_ranks=MappingProxyType(dict(state.ascended_ranks)),
            collected_runes=frozenset(state.collected_runes),
            rune_roll_counts=MappingProxyType(dict(state.rune_roll_counts)),
            legitimate_rune_roll_counts=MappingProxyType(
                dict(state.legitimate_rune_roll_counts)
            ),
        )

    def has_any_from_tier(self, tier: int) -> bool:
        return any(tier * 10 + slot in self.collected_ranks for slot in range(10))

    def tier_complete(self, tier: int) -> bool:
        return all(tier * 10 + slot in self.collected_ranks for slot in range(10))

    def ascended_count(self, min_tier: int = 1) -> int:
        return sum(1 for tier in self.ascended_ranks.values() if tier >= min_tier)

    def legitimate_rune_total(self) -> int:
        return sum(self.legitimate_rune_roll_counts.values())


@dataclass(frozen=True)
class Milestone:
    id: str
    name: str
    description: str
    requirement: Callable[[MilestoneSnapshot], bool]
    reward: float = 0
    bonus_kind: Optional[str] = None
    bonus: float = 1.0
    unlock: Optional[str] = None

    def is_met(self, snapshot: MilestoneSnapshot) -> bool:
        return bool(self.requirement(snapshot))


def _roll_milestone(count: int, **kwargs) -> Milestone:
    return Milestone(
        id=f"rolls_{count}",
        name=f"{count:,} Rolls",
        description=f"Roll {count:,} times",
        requirement=lambda snap: snap.roll_count >= count,
        **kwargs,
    )


def _rune_total_milestone(count: int, unlock: str) -> Milestone:
    return Milestone(
        id=f"rune_rolls_{count}",
        name=f"{count:,} Rune Rolls",
        description=f"Roll runes {count:,} times",
        requirement=lambda snap: snap.legitimate_rune_total() >= count,
        unlock=unlock,
    )


def _build_milestones() -> List[Milestone]:
    milestones = [
        _roll_milestone(100, reward=100, unlock=SLOW_AUTO_ROLL),
        _roll_milestone(1000, reward=1000),
        _roll_milestone(2500, bonus_kind="luck", bonus=1.5),
    ]

    for tier, (key, name) in enumerate(zip(TIER_KEYS, TIER_NAMES)):
        kind, bonus = TIER_COMPLETION_BONUSES[tier]
        milestones.append(
            Milestone(
                id=f"complete_{key}",
                name=f"{name} Complete",
                description=f"Collect all {name} ranks",
                requirement=lambda snap, tier=tier: snap.tier_complete(tier),
                bonus_kind=kind,
                bonus=bonus,
            )
        )

    milestones += [
        _roll_milestone(5000, unlock=FAST_AUTO_ROLL),
        _roll_milestone(10000, bonus_kind="luck", bonus=1.5),
        _roll_milestone(25000, bonus_kind="luck", bonus=2.0),
    ]

    for tier, (key, name) in enumerate(zip(TIER_KEYS, TIER_NAMES)):
        milestones.append(
            Milestone(
                id=f"first_{key}",
                name=f"First {name}",
                description=f"Roll your first {name} rank",
                requirement=lambda snap, tier=tier: snap.has_any_from_tier(tier),
                bonus_kind="points",
                bonus=1.1,
            )
        )

    milestones += [
        Milestone(
            id="first_ascension",
            name="First Ascension",
            description="Ascend a rank for the first time",
            requirement=lambda snap: snap.ascended_count() >= 1,
            bonus_kind="speed",
            bonus=1.2,
        ),
        Milestone(
            id="ten_ascensions",
            name="Ascension Master",
            description="Ascend 10 different ranks",
            requirement=lambda snap: snap.ascended_count() >= 10,
            bonus_kind="speed",
            bonus=1.5,
        ),
        Milestone(
            id="max_ascension",
            name="Starlit",
            description="Bring a rank to its final ascension",
            requirement=lambda snap: snap.ascended_count(min_tier=5) >= 1,
            bonus_kind="points",
            bonus=2.0,
        ),
    ]

    for index, (rune_name, _) in enumerate(RUNE_DEFINITIONS):
        short = rune_name.replace("Rune of ", "")
        milestones.append(
            Milestone(
                id=f"first_rune_{index}",
                name=f"First {short}",
                description=f"Roll your first {rune_name}",
                requirement=lambda snap, index=index: index in snap.collected_runes,
                bonus_kind="rune_speed",
                bonus=1.05,
            )
        )
    for index, (rune_name, _) in enumerate(RUNE_DEFINITIONS):
        short = rune_name.replace("Rune of ", "")
        milestones.append(
            Milestone(
                id=f"ten_rune_{index}",
                name=f"{short} Collector",
                description=f"Roll 10 Runes of {short}",
                requirement=lambda snap, index=index: snap.legitimate_rune_roll_counts.get(index, 0) >= 10,
                bonus_kind="rune_luck",
                bonus=1.1,
            )
        )

    milestones += [
        _rune_total_milestone(500, SLOW_RUNE_AUTO_ROLL),
        _rune_total_milestone(5000, FAST_RUNE_AUTO_ROLL),
    ]
    return milestones


MILESTONES: List[Milestone] = _build_milestones()
MILESTONES_BY_ID: Dict[str, Milestone] = {milestone.id: milestone for milestone in MILESTONES}


def get_milestone(milestone_id: str) -> Optional[Milestone]:
    return MILESTONES_BY_ID.get(milestone_id)


def evaluate(state: PlayerState) -> Dict[str, bool]:
    """Return whether each milestone's requirement currently holds."""

    snapshot = MilestoneSnapshot.of(state)
    return {milestone.id: milestone.is_met(snapshot) for milestone in MILESTONES}


def claimable(state: PlayerState) -> List[Milestone]:
    snapshot = MilestoneSnapshot.of(state)
    return [
        milestone
        for milestone in MILESTONES
        if milestone.id not in state.claimed_milestones and milestone.is_met(snapshot)
    ]


def claim(state: PlayerState, milestone_id: str) -> bool:
    """Claim a single milestone. Returns False when unknown, unmet or already claimed."""

    milestone = get_milestone(milestone_id)
    if milestone is None or milestone_id in state.claimed_milestones:
        return False
    if not milestone.is_met(MilestoneSnapshot.of(state)):
        return False

    state.total_points += milestone.reward
    state.claimed_milestones = state.claimed_milestones | {milestone_id}
    logger.info("Milestone %s claimed (+%s points)", milestone_id, milestone.reward)
    return True


def claim_all(state: PlayerState) -> List[str]:
    """Claim every satisfied milestone with one point addition and one set union."""

    ready = claimable(state)
    if not ready:
        return []

    ids = [milestone.id for milestone in ready]
    state.total_points += sum(milestone.reward for milestone in ready)
    state.claimed_milestones = state.claimed_milestones | set(ids)
    logger.info("Claimed %d milestones at once", len(ids))
    return ids


def milestone_bonus(claimed: AbstractSet[str], kind: str) -> float:
    """Product of ``kind`` bonuses over claimed milestones."""

    if kind not in BONUS_KINDS:
        raise ValueError(f"Unknown milestone bonus kind '{kind}'")
    product = 1.0
    for milestone in MILESTONES:
        if milestone.bonus_kind == kind and milestone.id in claimed:
            product *= milestone.bonus
    return product


def has_unlock(state: PlayerState, flag: str) -> bool:
    return any(
        milestone.unlock == flag and milestone.id in state.claimed_milestones
        for milestone in MILESTONES
    )
