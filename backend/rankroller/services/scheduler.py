"""Timer-driven rolls.

Each roll first takes the per-catalog in-flight flag on the session, before
any await, so manual and automatic rolls can never overlap. Timer callbacks
never close over multipliers: they refresh :class:`TimingSnapshot` from the
live state every time they fire. A roll also records the session generation
when it starts and drops its batch if the state was swapped out meanwhile.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional, Set

from ..config import settings
from .bonuses import Bonuses, compute_bonuses
from .milestones import (
    FAST_AUTO_ROLL,
    FAST_RUNE_AUTO_ROLL,
    SLOW_AUTO_ROLL,
    SLOW_RUNE_AUTO_ROLL,
    has_unlock,
)
from .rolls import RollResult, draw_runes, pay_for_rune_roll, preview_rank, preview_rune, roll_ranks, rune_roll_blocker

if TYPE_CHECKING:
    from .session import GameSession

logger = logging.getLogger(__name__)

RANK = "rank"
RUNE = "rune"
CATALOGS = (RANK, RUNE)

RANK_ANIMATION_FRAMES = 10
RUNE_FRAME_INTERVAL_MS = 100
SLOW_RANK_AUTO_FACTOR = 10
FAST_RANK_AUTO_FACTOR = 5
SLOW_RUNE_AUTO_FACTOR = 5
FAST_RUNE_AUTO_FACTOR = 2

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class TimingSnapshot:
    """Scheduler-relevant values as of the last refresh."""

    animation_interval_ms: int
    rank_animated: bool
    rank_auto_interval_ms: Optional[int]
    rune_roll_time_ms: int
    rune_frames: int
    rune_animated: bool
    rune_auto_interval_ms: Optional[int]
    rune_roll_ready: bool


def build_timing(
    session: "GameSession",
    bonuses: Optional[Bonuses] = None,
    *,
    min_frame_interval_ms: int,
    min_auto_interval_ms: int,
) -> TimingSnapshot:
    state = session.state
    bonuses = bonuses or compute_bonuses(state)

    interval = bonuses.animation_interval_ms
    rank_auto: Optional[int] = None
    if has_unlock(state, SLOW_AUTO_ROLL):
        factor = FAST_RANK_AUTO_FACTOR if has_unlock(state, FAST_AUTO_ROLL) else SLOW_RANK_AUTO_FACTOR
        rank_auto = max(interval * RANK_ANIMATION_FRAMES * factor, min_auto_interval_ms)

    rune_time = bonuses.rune_roll_time_ms
    rune_frames = rune_time // RUNE_FRAME_INTERVAL_MS
    rune_auto: Optional[int] = None
    if has_unlock(state, SLOW_RUNE_AUTO_ROLL):
        factor = FAST_RUNE_AUTO_FACTOR if has_unlock(state, FAST_RUNE_AUTO_ROLL) else SLOW_RUNE_AUTO_FACTOR
        rune_auto = max(rune_time * factor, min_auto_interval_ms)

    return TimingSnapshot(
        animation_interval_ms=interval,
        rank_animated=interval >= min_frame_interval_ms,
        rank_auto_interval_ms=rank_auto,
        rune_roll_time_ms=rune_time,
        rune_frames=rune_frames,
        rune_animated=rune_frames >= 1,
        rune_auto_interval_ms=rune_auto,
        rune_roll_ready=rune_roll_blocker(state, bonuses) is None,
    )


class RollScheduler:
    """Drives animated, instant and automatic rolls for one session."""

    def __init__(
        self,
        session: "GameSession",
        *,
        sleep: Sleep = asyncio.sleep,
        min_frame_interval_ms: Optional[int] = None,
        min_auto_interval_ms: Optional[int] = None,
    ) -> None:
        self._session = session
        self._sleep = sleep
        self._min_frame_interval_ms = (
            min_frame_interval_ms if min_frame_interval_ms is not None else settings.min_frame_interval_ms
        )
        self._min_auto_interval_ms = (
            min_auto_interval_ms if min_auto_interval_ms is not None else settings.min_auto_interval_ms
        )
        self._auto_tasks: Dict[str, asyncio.Task] = {}
        self._roll_tasks: Set[asyncio.Task] = set()
        self.latest: Optional[TimingSnapshot] = None

    def refresh(self) -> TimingSnapshot:
        """Recompute the timing snapshot from the live state."""

        self.latest = build_timing(
            self._session,
            min_frame_interval_ms=self._min_frame_interval_ms,
            min_auto_interval_ms=self._min_auto_interval_ms,
        )
        return self.latest

    async def run_rank_roll(self) -> Optional[RollResult]:
        """One rank roll, animated when the frame interval allows it.

        Returns ``None`` without doing anything while another rank roll is in
        flight, and discards the batch when the session was reset, reloaded or
        prestiged during the animation.
        """

        session = self._session
        if session.rank_roll_in_flight:
            return None
        session.rank_roll_in_flight = True
        generation = session.generation
        try:
            timing = self.refresh()
            if timing.rank_animated:
                for _ in range(RANK_ANIMATION_FRAMES):
                    await self._sleep(timing.animation_interval_ms / 1000)
                    session.current_rank = preview_rank(session.state, session.rng)

            if self._superseded(generation, RANK):
                session.current_rank = None
                return None
            result = roll_ranks(session.state, session.rng)
            session.current_rank = result.displayed
            session.last_rank_result = result
            await session.save()
            return result
        finally:
            session.rank_roll_in_flight = False

    async def run_rune_roll(self) -> Optional[RollResult]:
        """One paid rune roll.

        Returns ``None`` when blocked, already in flight, or superseded by a
        reset, reload or prestige while animating.
        """

        session = self._session
        if session.rune_roll_in_flight:
            return None
        bonuses = compute_bonuses(session.state)
        if not pay_for_rune_roll(session.state, bonuses):
            return None
        session.rune_roll_in_flight = True
        generation = session.generation
        try:
            await session.save()
            timing = self.refresh()
            if timing.rune_animated:
                for _ in range(timing.rune_frames):
                    await self._sleep(RUNE_FRAME_INTERVAL_MS / 1000)
                    session.current_rune = preview_rune(session.state, session.rng, bonuses)

            if self._superseded(generation, RUNE):
                session.current_rune = None
                return None
            result = draw_runes(session.state, session.rng, bonuses)
            session.current_rune = result.displayed
            session.last_rune_result = result
            await session.save()
            return result
        finally:
            session.rune_roll_in_flight = False

    def is_running(self, catalog: str) -> bool:
        task = self._auto_tasks.get(catalog)
        return task is not None and not task.done()

    def can_start(self, catalog: str) -> bool:
        timing = self.refresh()
        if catalog == RANK:
            return timing.rank_auto_interval_ms is not None
        if catalog == RUNE:
            return timing.rune_auto_interval_ms is not None
        raise ValueError(f"Unknown catalog '{catalog}'")

    def start(self, catalog: str) -> bool:
        """Begin auto rolling ``catalog``; False when it is not unlocked."""

        if self.is_running(catalog):
            return True
        if not self.can_start(catalog):
            return False
        self._auto_tasks[catalog] = asyncio.create_task(self._auto_loop(catalog))
        logger.info("Auto roll started for %s on slot %s", catalog, self._session.slot)
        return True

    def stop(self, catalog: str) -> None:
        """Stop rescheduling; a roll already in flight runs to completion."""

        task = self._auto_tasks.pop(catalog, None)
        if task is not None and not task.done():
            task.cancel()
            logger.info("Auto roll stopped for %s on slot %s", catalog, self._session.slot)

    def stop_all(self) -> None:
        for catalog in CATALOGS:
            self.stop(catalog)

    async def wait_idle(self) -> None:
        """Wait for every roll started by the auto timers to finish."""

        if self._roll_tasks:
            await asyncio.gather(*list(self._roll_tasks), return_exceptions=True)

    def _superseded(self, generation: int, catalog: str) -> bool:
        if self._session.generation == generation:
            return False
        logger.info("Discarding %s roll on slot %s; the state changed mid-roll", catalog, self._session.slot)
        return True

    def _spawn(self, coro: Awaitable[Optional[RollResult]]) -> None:
        task = asyncio.ensure_future(coro)
        self._roll_tasks.add(task)
        task.add_done_callback(self._roll_done)

    def _roll_done(self, task: asyncio.Task) -> None:
        self._roll_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Scheduled roll failed", exc_info=task.exception())

    async def _auto_loop(self, catalog: str) -> None:
        session = self._session
        while True:
            timing = self.refresh()
            interval = timing.rank_auto_interval_ms if catalog == RANK else timing.rune_auto_interval_ms
            if interval is None:
                logger.info("Auto roll for %s is no longer unlocked on slot %s", catalog, session.slot)
                break
            await self._sleep(interval / 1000)

            # Re-read at fire time; an upgrade may have landed during the wait.
            timing = self.refresh()
            if catalog == RANK:
                if not session.rank_roll_in_flight:
                    self._spawn(self.run_rank_roll())
            elif not session.rune_roll_in_flight and timing.rune_roll_ready:
                self._spawn(self.run_rune_roll())
        self._auto_tasks.pop(catalog, None)
