from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from .. import session, settlement, stats
from ..config import Settings
from ..deps import get_notifier, get_settings, get_solana
from ..models import GameState
from ..notifications import Notifier
from ..schemas import (
    CompleteRequest,
    CompleteResponse,
    FeedEntry,
    GameStateResponse,
    PayoutResponse,
    UpdateStateRequest,
    UpdateStateResponse,
)
from ..solana import SolanaClient

router = APIRouter(prefix="", tags=["games"])


def _state_response(game_id: str, state: GameState) -> GameStateResponse:
    return GameStateResponse(
        game_id=str(game_id),
        state_id=state.id,
        current_state=state.state,
        last_updated=state.created_at,
    )


@router.get("/games/feed", response_model=List[FeedEntry])
async def recent_results(limit: int = Query(default=stats.DEFAULT_FEED_LIMIT, ge=1, le=100)):
    return await stats.recent_results(limit)


@router.get("/games/{game_id}/state", response_model=GameStateResponse)
async def get_state(game_id: str):
    return _state_response(game_id, await session.get_state(game_id))


@router.put("/games/{game_id}/state", response_model=UpdateStateResponse)
async def update_state(game_id: str, req: UpdateStateRequest):
    result = await session.update_state(game_id, req.player_id, req.new_state, req.move)
    return UpdateStateResponse(state_id=result.state_id, game_ended=result.game_ended, winner=result.winner)


@router.get("/games/{game_id}/history", response_model=List[GameStateResponse])
async def get_history(game_id: str):
    return [_state_response(game_id, s) for s in await session.get_history(game_id)]


@router.post("/games/{game_id}/complete", response_model=CompleteResponse)
async def complete_game(
    game_id: str,
    req: CompleteRequest,
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    result = await settlement.complete(
        game_id, req.winner_wallet, req.loser_wallet, notifier=notifier, app_url=settings.app_url
    )
    return CompleteResponse(
        game_id=result.game_id,
        winner=result.winner,
        loser=result.loser,
        total_pot=result.total_pot,
        platform_fee=result.platform_fee,
        winner_amount=result.winner_amount,
    )


@router.post("/games/{game_id}/payout", response_model=PayoutResponse)
async def payout(
    game_id: str,
    solana: SolanaClient = Depends(get_solana),
    settings: Settings = Depends(get_settings),
):
    result = await settlement.payout(game_id, solana, settings.platform_wallet)
    return PayoutResponse(
        game_id=result.game_id,
        winner_wallet=result.winner_wallet,
        total_pot=result.total_pot,
        platform_fee=result.platform_fee,
        amount=result.amount,
        transaction_signature=result.transaction_signature,
        fee_wallet=result.fee_wallet,
        already_processed=result.already_processed,
    )


__all__ = ["router"]
