"""Derived multipliers.

Every value here is a pure function of :class:`PlayerState` and is recomputed
on each read, so an upgrade bought mid-cycle is visible to the very next roll.

Rune effects are driven by the raw rune counts. The Eternity rune scales the
raw count of every other rune before that rune's curve is applied, and each
curve is soft-capped in three linear segments: the natural rate up to 100x,
then a thousandth of it up to 1000x, then a millionth of it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..config import settings
from ..models.player import PlayerState
from .milestones import milestone_bonus

MULTIPLIER_CEILING = 1e15
RATIO_FLOOR = 1e-15
BULK_CEILING = 1000

UPGRADE_BASE = 1.1
FIRST_SOFT_CAP = 100.0
SECOND_SOFT_CAP = 1000.0
SECOND_TIER_SLOWDOWN = 1_000
THIRD_TIER_SLOWDOWN = 1_000_000

ETERNITY_DECAY = 0.9
ETERNITY_CEILING = 2.0

SHADOW_TIER_STEP = 0.1
SHADOW_TIER_GROWTH = 100.0
SHADOW_MAX_TIERS = 9
COST_REDUCTION_UPGRADE_STEP = 0.9

ROLLER_PRESTIGE_RATE = 0.10
RUNE_PRESTIGE_RATE = 0.05

BASE_ANIMATION_INTERVAL_MS = 50
BASE_RUNE_ROLL_TIME_MS = 5000
RUNE_ROLL_COST = 1000

POINTS_RUNE = 0
LUCK_RUNE = 1
SPEED_RUNE = 2
RUNE_SPEED_RUNE = 3
BULK_RUNE = 4
RUNE_LUCK_RUNE = 5
RUNE_BULK_RUNE = 6
SHADOW_RUNE = 7
LIGHT_RUNE = 8
ETERNITY_RUNE = 9

# (per-unit rate, starting value) for the continuous rune curves.
RUNE_CURVES = {
    POINTS_RUNE: (0.1, 1.0),
    LUCK_RUNE: (0.1, 1.0),
    SPEED_RUNE: (0.5, 1.0),
    RUNE_SPEED_RUNE: (0.2, 1.0),
    RUNE_LUCK_RUNE: (0.1, 1.0),
    LIGHT_RUNE: (1.0, 2.0),
}
BULK_CURVE = (1.0, 1.0)


def bounded_power(base: float, exponent: float, ceiling: float = MULTIPLIER_CEILING) -> float:
    """``base ** exponent`` clamped to ``ceiling`` without overflowing first."""

    if exponent <= 0 or base <= 1:
        return base**exponent
    if exponent * math.log(base) >= math.log(ceiling):
        return ceiling
    return min(base**exponent, ceiling)


def soft_cap(
    amount: float,
    rate: float,
    base: float = 1.0,
    first_cap: float = FIRST_SOFT_CAP,
    second_cap: float = SECOND_SOFT_CAP,
) -> float:
    """Three-segment linear curve that slows 1000x at each cap."""

    if amount <= 0:
        return base
    value = base + amount * rate
    if value <= first_cap:
        return value

    first_break = (first_cap - base) / rate
    second_rate = rate / SECOND_TIER_SLOWDOWN
    excess = amount - first_break
    value = first_cap + excess * second_rate
    if value <= second_cap:
        return value

    second_break = (second_cap - first_cap) / second_rate
    third_rate = rate / THIRD_TIER_SLOWDOWN
    return min(second_cap + (excess - second_break) * third_rate, MULTIPLIER_CEILING)


def soft_cap_breakpoints(
    rate: float,
    base: float = 1.0,
    first_cap: float = FIRST_SOFT_CAP,
    second_cap: float = SECOND_SOFT_CAP,
) -> tuple[float, float]:
    """Raw amounts at which :func:`soft_cap` changes segment."""

    first_break = (first_cap - base) / rate
    second_break = first_break + (second_cap - first_cap) / (rate / SECOND_TIER_SLOWDOWN)
    return first_break, second_break


def eternity_multiplier(state: PlayerState) -> float:
    count = state.rune_count(ETERNITY_RUNE)
    value = 1 + (1 - ETERNITY_DECAY**count)
    return min(max(value, 1.0), ETERNITY_CEILING)


def effective_rune_amount(state: PlayerState, rune_index: int) -> float:
    return state.rune_count(rune_index) * eternity_multiplier(state)


def rune_bonus(state: PlayerState, rune_index: int) -> float:
    rate, base = RUNE_CURVES[rune_index]
    return min(soft_cap(effective_rune_amount(state, rune_index), rate, base), MULTIPLIER_CEILING)


def rune_bulk(state: PlayerState, rune_index: int) -> int:
    rate, base = BULK_CURVE
    value = soft_cap(effective_rune_amount(state, rune_index), rate, base)
    return min(int(math.floor(value)), BULK_CEILING)


def shadow_cost_reduction(state: PlayerState) -> float:
    """10% per tier, each tier needing 100x the Shadow runes of the last."""

    amount = effective_rune_amount(state, SHADOW_RUNE)
    tiers = 0
    threshold = 1.0
    while amount >= threshold and tiers < SHADOW_MAX_TIERS:
        tiers += 1
        threshold *= SHADOW_TIER_GROWTH
    return tiers * SHADOW_TIER_STEP


def _clamp(value: float) -> float:
    return min(value, MULTIPLIER_CEILING)


def luck_multiplier(state: PlayerState) -> float:
    return _clamp(
        bounded_power(UPGRADE_BASE, state.luck_level)
        * milestone_bonus(state.claimed_milestones, "luck")
        * rune_bonus(state, LUCK_RUNE)
    )


def prestige_multiplier(state: PlayerState) -> float:
    roller = 1 + state.roller_prestige_level * ROLLER_PRESTIGE_RATE
    rune = 1 + state.rune_prestige_level * RUNE_PRESTIGE_RATE
    return roller * rune


def points_multiplier(state: PlayerState) -> float:
    return _clamp(
        bounded_power(UPGRADE_BASE, state.points_multi_level)
        * milestone_bonus(state.claimed_milestones, "points")
        * rune_bonus(state, POINTS_RUNE)
        * prestige_multiplier(state)
    )


def speed_multiplier(state: PlayerState) -> float:
    return _clamp(
        bounded_power(UPGRADE_BASE, state.speed_level)
        * milestone_bonus(state.claimed_milestones, "speed")
        * rune_bonus(state, SPEED_RUNE)
    )


def rune_speed_multiplier(state: PlayerState) -> float:
    return _clamp(
        milestone_bonus(state.claimed_milestones, "rune_speed")
        * rune_bonus(state, RUNE_SPEED_RUNE)
    )


def rune_luck_multiplier(state: PlayerState) -> float:
    return _clamp(
        milestone_bonus(state.claimed_milestones, "rune_luck")
        * rune_bonus(state, RUNE_LUCK_RUNE)
    )


def bulk_roll_count(state: PlayerState, max_bulk: Optional[int] = None) -> int:
    limit = max_bulk if max_bulk is not None else settings.max_bulk_count
    return max(1, min(rune_bulk(state, BULK_RUNE) * (1 + state.bulk_roll_level), limit))


def rune_bulk_count(state: PlayerState, max_bulk: Optional[int] = None) -> int:
    limit = max_bulk if max_bulk is not None else settings.max_bulk_count
    return max(1, min(rune_bulk(state, RUNE_BULK_RUNE) * (1 + state.rune_bulk_roll_level), limit))


def cost_ratio(state: PlayerState) -> float:
    ratio = (1 - shadow_cost_reduction(state)) * COST_REDUCTION_UPGRADE_STEP**state.cost_reduction_level
    return max(ratio, RATIO_FLOOR)


def ascension_bonus(state: PlayerState) -> float:
    return rune_bonus(state, LIGHT_RUNE)


def animation_interval_ms(speed: float) -> int:
    return int(math.floor(BASE_ANIMATION_INTERVAL_MS / speed))


def rune_roll_time_ms(rune_speed: float) -> int:
    return int(math.floor(BASE_RUNE_ROLL_TIME_MS / rune_speed))


@dataclass(frozen=True)
class Bonuses:
    """Every derived multiplier for one state, computed together."""

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

    @property
    def animation_interval_ms(self) -> int:
        return animation_interval_ms(self.speed)

    @property
    def rune_roll_time_ms(self) -> int:
        return rune_roll_time_ms(self.rune_speed)

    @property
    def rune_roll_cost(self) -> int:
        return RUNE_ROLL_COST * self.rune_bulk_count


def compute_bonuses(state: PlayerState, max_bulk: Optional[int] = None) -> Bonuses:
    return Bonuses(
        luck=luck_multiplier(state),
        points=points_multiplier(state),
        speed=speed_multiplier(state),
        rune_speed=rune_speed_multiplier(state),
        rune_luck=rune_luck_multiplier(state),
        bulk_count=bulk_roll_count(state, max_bulk),
        rune_bulk_count=rune_bulk_count(state, max_bulk),
        cost_ratio=cost_ratio(state),
        ascension_bonus=ascension_bonus(state),
        eternity=eternity_multiplier(state),
    )
