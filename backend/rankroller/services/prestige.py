"""Roller and rune prestige.

The two resets are independent: each wipes only its own domain and leaves the
other domain, including the other prestige level, untouched.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models.player import PlayerState
from .catalog import RANK_COUNT

logger = logging.getLogger(__name__)

ROLLER_PRESTIGE_RANK = RANK_COUNT - 1
ROLLER_PRESTIGE_THRESHOLD = 10

RUNE_PRESTIGE_THRESHOLDS = [100, 400, 1000]
MAX_RUNE_PRESTIGE = len(RUNE_PRESTIGE_THRESHOLDS)


def can_roller_prestige(state: PlayerState) -> bool:
    return state.rank_count(ROLLER_PRESTIGE_RANK) >= ROLLER_PRESTIGE_THRESHOLD


def roller_prestige(state: PlayerState) -> bool:
    if not can_roller_prestige(state):
        return False

    state.roller_prestige_level += 1
    state.roll_count = 0
    state.total_points = 0.0
    state.collected_ranks = set()
    state.rank_roll_counts = {}
    state.ascended_ranks = {}
    state.highest_rank = None
    state.highest_rank_roll = None
    state.luck_level = 0
    state.points_multi_level = 0
    state.speed_level = 0
    state.cost_reduction_level = 0
    state.bulk_roll_level = 0
    logger.info("Roller prestige reached level %d", state.roller_prestige_level)
    return True


def rune_prestige_requirement(state: PlayerState) -> Optional[int]:
    """Rune roll count needed for the next rune prestige, ``None`` once maxed."""

    if state.rune_prestige_level >= MAX_RUNE_PRESTIGE:
        return None
    return RUNE_PRESTIGE_THRESHOLDS[state.rune_prestige_level]


def can_rune_prestige(state: PlayerState) -> bool:
    requirement = rune_prestige_requirement(state)
    return requirement is not None and state.rune_roll_count >= requirement


def rune_prestige(state: PlayerState) -> bool:
    if not can_rune_prestige(state):
        return False

    state.rune_prestige_level += 1
    state.collected_runes = set()
    state.rune_roll_counts = {}
    state.legitimate_rune_roll_counts = {}
    state.rune_roll_count = 0
    logger.info("Rune prestige reached level %d", state.rune_prestige_level)
    return True
