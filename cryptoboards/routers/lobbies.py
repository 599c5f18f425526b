from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from .. import lobby
from ..config import Settings
from ..deps import get_notifier, get_settings, get_solana
from ..errors import InvalidInput
from ..notifications import Notifier
from ..payments import pay
from ..schemas import (
    CancelResponse,
    CreateLobbyRequest,
    JoinResponse,
    LobbyDetail,
    LobbySummary,
    PayRequest,
    PayResponse,
    RefundEntry,
    StartResponse,
    WalletRequest,
)
from ..settlement import to_lamports
from ..solana import SolanaClient

router = APIRouter(prefix="", tags=["lobbies"])


def _require_wallet(wallet_address: Optional[str]) -> str:
    if not wallet_address or not wallet_address.strip():
        raise InvalidInput("Wallet address is required")
    return wallet_address


@router.get("/lobbies", response_model=List[LobbySummary])
async def list_lobbies(
    wallet_address: str = Query(...),
    settings: Settings = Depends(get_settings),
):
    return await lobby.list_lobbies(wallet_address, settings.stale_lobby_minutes)


@router.post("/lobbies", response_model=LobbyDetail, status_code=status.HTTP_201_CREATED)
async def create_lobby(
    req: CreateLobbyRequest,
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    game = await lobby.create_lobby(
        req.creator_wallet,
        req.game_type,
        req.entry_fee,
        max_players=req.max_players,
        is_private=req.is_private,
        invited_wallets=req.invited_wallets,
        notifier=notifier,
        app_url=settings.app_url,
    )
    return await lobby.get_lobby(str(game.id))


@router.get("/lobbies/{lobby_id}", response_model=LobbyDetail)
async def get_lobby(lobby_id: str):
    return await lobby.get_lobby(lobby_id)


@router.post("/lobbies/{lobby_id}/join", response_model=JoinResponse)
async def join_lobby(lobby_id: str, req: WalletRequest):
    result = await lobby.join_lobby(lobby_id, _require_wallet(req.wallet_address))
    return JoinResponse(message=result.message, entry_fee=result.entry_fee, status=result.status)


@router.post("/lobbies/{lobby_id}/pay", response_model=PayResponse)
async def pay_entry_fee(
    lobby_id: str,
    req: PayRequest,
    solana: SolanaClient = Depends(get_solana),
):
    result = await pay(lobby_id, _require_wallet(req.wallet_address), req.transaction_signature, solana)
    return PayResponse(
        message="Payment verified. You are ready to play!",
        entry_fee=result.entry_fee,
        ready_count=result.ready_count,
        total_count=result.total_count,
    )


@router.post("/lobbies/{lobby_id}/start", response_model=StartResponse)
async def start_game(
    lobby_id: str,
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
):
    result = await lobby.start(lobby_id, notifier=notifier, app_url=settings.app_url)
    return StartResponse(
        message="Game started successfully",
        game_id=str(result.game.id),
        game_type=result.game.game_type,
        state_id=result.state.id,
    )


@router.post("/lobbies/{lobby_id}/cancel", response_model=CancelResponse)
async def cancel_lobby(
    lobby_id: str,
    req: WalletRequest,
    solana: SolanaClient = Depends(get_solana),
):
    result = await lobby.cancel(lobby_id, _require_wallet(req.wallet_address), solana)
    return CancelResponse(
        message=result.message,
        lobby_deleted=result.lobby_deleted,
        remaining_players=result.remaining_players,
        refunds=[
            RefundEntry(
                wallet_address=r.wallet_address,
                amount=to_lamports(r.amount),
                transaction_signature=r.transaction_signature,
            )
            for r in result.refunds
        ],
    )


__all__ = ["router"]
