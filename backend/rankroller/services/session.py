"""One player's live game: state, RNG, roll guards and persistence."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Dict, List, Optional

from ..models.catalog import Rank, Rune
from ..models.player import PlayerState, fresh_state
from ..repositories.protocols import SaveRepositoryProtocol
from . import ascension, milestones, prestige, upgrades
from .bonuses import Bonuses, compute_bonuses
from .cheats import CheatEdits, apply_cheats
from .rolls import RollResult
from .save_codec import encode, load_state, validate_import
from .scheduler import RollScheduler

logger = logging.getLogger(__name__)


class GameSession:
    """Single owner of a :class:`PlayerState`.

    Every mutator changes the state synchronously and then persists it, so no
    other coroutine can observe a half-applied change.
    """

    def __init__(
        self,
        slot: str,
        repository: SaveRepositoryProtocol,
        state: Optional[PlayerState] = None,
        *,
        rng: Optional[random.Random] = None,
        scheduler_options: Optional[dict] = None,
    ) -> None:
        self.slot = slot
        self.state = state if state is not None else fresh_state()
        self.rng = rng or random.Random()
        self._repository = repository
        # Bumped whenever the state is replaced or a domain is wiped.
        self.generation = 0
        self.rank_roll_in_flight = False
        self.rune_roll_in_flight = False
        self.current_rank: Optional[Rank] = None
        self.current_rune: Optional[Rune] = None
        self.last_rank_result: Optional[RollResult] = None
        self.last_rune_result: Optional[RollResult] = None
        self.scheduler = RollScheduler(self, **(scheduler_options or {}))

    @classmethod
    async def open(
        cls,
        slot: str,
        repository: SaveRepositoryProtocol,
        *,
        rng: Optional[random.Random] = None,
        scheduler_options: Optional[dict] = None,
    ) -> "GameSession":
        """Load ``slot`` from the repository; unreadable saves start fresh."""

        blob = await repository.read(slot)
        return cls(
            slot,
            repository,
            load_state(blob),
            rng=rng,
            scheduler_options=scheduler_options,
        )

    def bonuses(self) -> Bonuses:
        return compute_bonuses(self.state)

    async def save(self) -> str:
        blob = encode(self.state)
        await self._repository.write(self.slot, blob)
        return blob

    async def reload(self) -> None:
        self.generation += 1
        self.state = load_state(await self._repository.read(self.slot))
        self.current_rank = None
        self.current_rune = None

    async def roll(self) -> Optional[RollResult]:
        return await self.scheduler.run_rank_roll()

    async def roll_runes(self) -> Optional[RollResult]:
        return await self.scheduler.run_rune_roll()

    async def purchase(self, kind: str) -> bool:
        bought = upgrades.purchase_upgrade(self.state, kind)
        if bought:
            await self.save()
        return bought

    async def claim(self, milestone_id: str) -> bool:
        claimed = milestones.claim(self.state, milestone_id)
        if claimed:
            await self.save()
        return claimed

    async def claim_all(self) -> List[str]:
        claimed = milestones.claim_all(self.state)
        if claimed:
            await self.save()
        return claimed

    async def ascend(self, rank_index: int) -> int:
        gained = ascension.ascend_max(self.state, rank_index)
        if gained:
            await self.save()
        return gained

    async def ascend_all(self) -> int:
        gained = ascension.ascend_all(self.state)
        if gained:
            await self.save()
        return gained

    async def roller_prestige(self) -> bool:
        done = prestige.roller_prestige(self.state)
        if done:
            self.generation += 1
            self.current_rank = None
            await self.save()
        return done

    async def rune_prestige(self) -> bool:
        done = prestige.rune_prestige(self.state)
        if done:
            self.generation += 1
            self.current_rune = None
            await self.save()
        return done

    async def apply_cheats(self, edits: CheatEdits) -> None:
        apply_cheats(self.state, edits)
        await self.save()

    async def export_save(self) -> str:
        """Return the persisted envelope, writing one first if none exists."""

        blob = await self._repository.read(self.slot)
        if blob is None:
            blob = await self.save()
        return blob

    async def import_save(self, blob: str) -> None:
        """Replace the stored envelope wholesale, then reload from it."""

        candidate = validate_import(blob)
        self.scheduler.stop_all()
        await self._repository.write(self.slot, candidate)
        await self.reload()
        logger.info("Save imported into slot %s", self.slot)

    async def reset(self) -> None:
        self.scheduler.stop_all()
        self.generation += 1
        self.state = fresh_state()
        self.current_rank = None
        self.current_rune = None
        self.last_rank_result = None
        self.last_rune_result = None
        await self.save()
        logger.info("Slot %s reset to a fresh state", self.slot)


class SessionManager:
    """Keeps one live session per save slot."""

    def __init__(
        self,
        repository: SaveRepositoryProtocol,
        *,
        scheduler_options: Optional[dict] = None,
    ) -> None:
        self._repository = repository
        self._scheduler_options = scheduler_options
        self._sessions: Dict[str, GameSession] = {}
        self._lock = asyncio.Lock()

    @property
    def repository(self) -> SaveRepositoryProtocol:
        return self._repository

    async def get(self, slot: str) -> GameSession:
        async with self._lock:
            session = self._sessions.get(slot)
            if session is None:
                session = await GameSession.open(
                    slot,
                    self._repository,
                    scheduler_options=self._scheduler_options,
                )
                self._sessions[slot] = session
            return session

    async def close(self) -> None:
        for session in self._sessions.values():
            session.scheduler.stop_all()
            await session.scheduler.wait_idle()
        self._sessions.clear()
