from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from ..config import settings
from ..models.catalog import Rank, Rune
from ..schemas import (
    AscendResponse,
    AutoRollRequest,
    AutoRollResponse,
    BonusesPublic,
    CheatRequest,
    ClaimResponse,
    GameView,
    MilestonePublic,
    PrestigePublic,
    PrestigeResponse,
    RankPublic,
    ResetRequest,
    RollResponse,
    RunePublic,
    SaveBlob,
    UpgradePublic,
)
from ..services import milestones, prestige, upgrades
from ..services.catalog import RANK_COUNT, rune_altar_open
from ..services.rolls import RollResult, rune_roll_blocker
from ..services.save_codec import SaveImportError
from ..services.scheduler import CATALOGS
from ..services.session import GameSession, SessionManager
from ..state import get_session_manager_dependency

router = APIRouter(prefix="/game/{slot}", tags=["game"])


async def get_session(
    slot: str,
    manager: SessionManager = Depends(get_session_manager_dependency),
) -> GameSession:
    return await manager.get(slot)


def _rank_public(rank: Optional[Rank]) -> Optional[RankPublic]:
    if rank is None:
        return None
    return RankPublic(
        index=rank.index,
        tier=rank.tier,
        tier_name=rank.tier_name,
        display_name=rank.display_name,
        probability=rank.probability,
    )


def _rune_public(rune: Optional[Rune]) -> Optional[RunePublic]:
    if rune is None:
        return None
    return RunePublic(index=rune.index, name=rune.name, effect=rune.effect, probability=rune.probability)


def build_view(session: GameSession) -> GameView:
    state = session.state
    bonuses = session.bonuses()
    return GameView(
        slot=session.slot,
        state=state.model_dump(mode="json"),
        bonuses=BonusesPublic(
            luck=bonuses.luck,
            points=bonuses.points,
            speed=bonuses.speed,
            rune_speed=bonuses.rune_speed,
            rune_luck=bonuses.rune_luck,
            bulk_count=bonuses.bulk_count,
            rune_bulk_count=bonuses.rune_bulk_count,
            cost_ratio=bonuses.cost_ratio,
            ascension_bonus=bonuses.ascension_bonus,
            eternity=bonuses.eternity,
            animation_interval_ms=bonuses.animation_interval_ms,
            rune_roll_time_ms=bonuses.rune_roll_time_ms,
            rune_roll_cost=bonuses.rune_roll_cost,
        ),
        upgrades=[
            UpgradePublic(
                key=key,
                name=definition.name,
                level=upgrades.upgrade_level(state, key),
                max_level=definition.max_level,
                cost=upgrades.upgrade_cost(state, key),
                affordable=upgrades.can_afford(state, key),
            )
            for key, definition in upgrades.UPGRADES.items()
        ],
        prestige=PrestigePublic(
            roller_level=state.roller_prestige_level,
            roller_available=prestige.can_roller_prestige(state),
            rune_level=state.rune_prestige_level,
            rune_available=prestige.can_rune_prestige(state),
            rune_requirement=prestige.rune_prestige_requirement(state),
        ),
        current_rank=_rank_public(session.current_rank),
        current_rune=_rune_public(session.current_rune),
        rank_rolling=session.rank_roll_in_flight,
        rune_rolling=session.rune_roll_in_flight,
        rune_altar_open=rune_altar_open(state.collected_ranks),
        auto_rolling={catalog: session.scheduler.is_running(catalog) for catalog in CATALOGS},
        claimable_milestones=[milestone.id for milestone in milestones.claimable(state)],
    )


def _roll_response(session: GameSession, result: RollResult) -> RollResponse:
    displayed = result.displayed
    name = displayed.display_name if isinstance(displayed, Rank) else displayed.name
    return RollResponse(
        displayed_index=displayed.index,
        displayed_name=name,
        counts=result.counts,
        samples=result.samples,
        points_gained=result.points_gained,
        cost=result.cost,
        new_highest=result.new_highest,
        total_points=session.state.total_points,
    )


@router.get("", response_model=GameView)
async def read_game(session: GameSession = Depends(get_session)) -> GameView:
    """Return the full state together with every derived value."""

    return build_view(session)


@router.post("/roll", response_model=RollResponse)
async def roll_ranks(session: GameSession = Depends(get_session)) -> RollResponse:
    """Run one (possibly animated) bulk rank roll."""

    if session.rank_roll_in_flight:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A rank roll is already in progress")

    result = await session.roll()
    if result is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The game changed before the roll finished")
    return _roll_response(session, result)


@router.post("/runes/roll", response_model=RollResponse)
async def roll_runes(session: GameSession = Depends(get_session)) -> RollResponse:
    """Pay for and run one bulk rune roll."""

    if session.rune_roll_in_flight:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A rune roll is already in progress")
    blocker = rune_roll_blocker(session.state)
    if blocker is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=blocker)

    result = await session.roll_runes()
    if result is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="The game changed before the roll finished")
    return _roll_response(session, result)


@router.post("/upgrades/{kind}", response_model=GameView)
async def purchase_upgrade(kind: str, session: GameSession = Depends(get_session)) -> GameView:
    if kind not in upgrades.UPGRADES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Upgrade '{kind}' not found")
    if upgrades.is_maxed(session.state, kind):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Upgrade is already at its maximum level")
    if not await session.purchase(kind):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Not enough points")
    return build_view(session)


@router.get("/milestones", response_model=list[MilestonePublic])
async def list_milestones(session: GameSession = Depends(get_session)) -> list[MilestonePublic]:
    met = milestones.evaluate(session.state)
    return [
        MilestonePublic(
            id=milestone.id,
            name=milestone.name,
            description=milestone.description,
            reward=milestone.reward,
            bonus_kind=milestone.bonus_kind,
            bonus=milestone.bonus,
            unlock=milestone.unlock,
            met=met[milestone.id],
            claimed=milestone.id in session.state.claimed_milestones,
        )
        for milestone in milestones.MILESTONES
    ]


@router.post("/milestones/claim", response_model=ClaimResponse)
async def claim_all_milestones(session: GameSession = Depends(get_session)) -> ClaimResponse:
    """Claim every satisfied milestone at once."""

    claimed = await session.claim_all()
    return ClaimResponse(claimed=claimed, total_points=session.state.total_points)


@router.post("/milestones/{milestone_id}/claim", response_model=ClaimResponse)
async def claim_milestone(milestone_id: str, session: GameSession = Depends(get_session)) -> ClaimResponse:
    if milestones.get_milestone(milestone_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Milestone '{milestone_id}' not found",
        )
    if not await session.claim(milestone_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Milestone is not complete or was already claimed",
        )
    return ClaimResponse(claimed=[milestone_id], total_points=session.state.total_points)


@router.post("/ranks/ascend", response_model=AscendResponse)
async def ascend_all_ranks(session: GameSession = Depends(get_session)) -> AscendResponse:
    gained = await session.ascend_all()
    return AscendResponse(tiers_gained=gained, ascended_ranks=session.state.ascended_ranks)


@router.post("/ranks/{rank_index}/ascend", response_model=AscendResponse)
async def ascend_rank(rank_index: int, session: GameSession = Depends(get_session)) -> AscendResponse:
    if not 0 <= rank_index < RANK_COUNT:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Rank {rank_index} not found")
    gained = await session.ascend(rank_index)
    if not gained:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rank cannot ascend yet")
    return AscendResponse(tiers_gained=gained, ascended_ranks=session.state.ascended_ranks)


@router.post("/prestige/roller", response_model=PrestigeResponse)
async def roller_prestige(session: GameSession = Depends(get_session)) -> PrestigeResponse:
    if not await session.roller_prestige():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Roller prestige is not available")
    return PrestigeResponse(
        roller_level=session.state.roller_prestige_level,
        rune_level=session.state.rune_prestige_level,
    )


@router.post("/prestige/rune", response_model=PrestigeResponse)
async def rune_prestige(session: GameSession = Depends(get_session)) -> PrestigeResponse:
    if not await session.rune_prestige():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Rune prestige is not available")
    return PrestigeResponse(
        roller_level=session.state.roller_prestige_level,
        rune_level=session.state.rune_prestige_level,
    )


@router.post("/auto-roll", response_model=AutoRollResponse)
async def toggle_auto_roll(payload: AutoRollRequest, session: GameSession = Depends(get_session)) -> AutoRollResponse:
    scheduler = session.scheduler
    if not payload.enabled:
        scheduler.stop(payload.catalog)
        return AutoRollResponse(catalog=payload.catalog, running=False)
    if not scheduler.start(payload.catalog):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Auto roll is not unlocked yet")
    return AutoRollResponse(catalog=payload.catalog, running=True)


@router.get("/export", response_model=SaveBlob)
async def export_save(session: GameSession = Depends(get_session)) -> SaveBlob:
    return SaveBlob(save=await session.export_save())


@router.post("/import", response_model=GameView)
async def import_save(payload: SaveBlob, session: GameSession = Depends(get_session)) -> GameView:
    try:
        await session.import_save(payload.save)
    except SaveImportError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return build_view(session)


@router.post("/reset", response_model=GameView)
async def reset_game(payload: ResetRequest, session: GameSession = Depends(get_session)) -> GameView:
    if payload.confirm != "RESET":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Type RESET to confirm")
    await session.reset()
    return build_view(session)


@router.post("/cheats", response_model=GameView, include_in_schema=False)
async def apply_cheats(payload: CheatRequest, session: GameSession = Depends(get_session)) -> GameView:
    if not settings.enable_cheats:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    try:
        await session.apply_cheats(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return build_view(session)
