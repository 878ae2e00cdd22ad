from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models.player import PlayerState
from .bonuses import bounded_power, cost_ratio

logger = logging.getLogger(__name__)

COST_CEILING = 1e300


@dataclass(frozen=True)
class UpgradeDefinition:
    key: str
    field: str
    name: str
    max_level: Optional[int] = None
    base_cost: float = 0.0
    cost_growth: float = 1.0
    cost_table: Optional[List[float]] = None


UPGRADES: Dict[str, UpgradeDefinition] = {
    definition.key: definition
    for definition in (
        UpgradeDefinition("luck", "luck_level", "Luck", base_cost=100, cost_growth=2),
        UpgradeDefinition("points", "points_multi_level", "Points Multiplier", base_cost=100, cost_growth=2),
        UpgradeDefinition("speed", "speed_level", "Roll Speed", base_cost=100, cost_growth=2),
        UpgradeDefinition(
            "cost_reduction",
            "cost_reduction_level",
            "Bargaining",
            max_level=5,
            base_cost=10_000,
            cost_growth=10,
        ),
        UpgradeDefinition(
            "bulk_roll",
            "bulk_roll_level",
            "Bulk Roll",
            max_level=4,
            cost_table=[5_000, 50_000, 500_000, 5_000_000],
        ),
        UpgradeDefinition(
            "rune_bulk_roll",
            "rune_bulk_roll_level",
            "Rune Bulk Roll",
            max_level=2,
            cost_table=[100_000, 10_000_000],
        ),
    )
}


def get_upgrade(kind: str) -> UpgradeDefinition:
    try:
        return UPGRADES[kind]
    except KeyError:
        raise ValueError(f"Unknown upgrade '{kind}'") from None


def upgrade_level(state: PlayerState, kind: str) -> int:
    return getattr(state, get_upgrade(kind).field)


def is_maxed(state: PlayerState, kind: str) -> bool:
    definition = get_upgrade(kind)
    return definition.max_level is not None and upgrade_level(state, kind) >= definition.max_level


def upgrade_cost(state: PlayerState, kind: str) -> Optional[int]:
    """Cost of the next level after cost reduction, ``None`` once maxed."""

    definition = get_upgrade(kind)
    if is_maxed(state, kind):
        return None
    level = upgrade_level(state, kind)
    if definition.cost_table is not None:
        raw = definition.cost_table[level]
    else:
        raw = definition.base_cost * bounded_power(definition.cost_growth, level, COST_CEILING)
    return int(math.floor(min(raw, COST_CEILING) * cost_ratio(state)))


def can_afford(state: PlayerState, kind: str) -> bool:
    cost = upgrade_cost(state, kind)
    return cost is not None and state.total_points >= cost


def purchase_upgrade(state: PlayerState, kind: str) -> bool:
    """Buy one level of ``kind``. Rejected with no change when unaffordable or maxed."""

    cost = upgrade_cost(state, kind)
    if cost is None or state.total_points < cost:
        return False

    definition = get_upgrade(kind)
    state.total_points -= cost
    setattr(state, definition.field, getattr(state, definition.field) + 1)
    logger.debug("Bought %s level %d for %d points", kind, getattr(state, definition.field), cost)
    return True
