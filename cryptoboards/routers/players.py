from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Query, status

from .. import players, stats
from ..models import Player
from ..schemas import (
    FriendEntry,
    FriendRequest,
    HistoryEntry,
    PlayerRequest,
    PlayerResponse,
    PlayerStatsResponse,
    PresenceRequest,
    SmsPreferencesRequest,
    UpdateProfileRequest,
)

router = APIRouter(prefix="", tags=["players"])


def _player_response(player: Player) -> PlayerResponse:
    return PlayerResponse(
        id=str(player.id),
        wallet_address=player.wallet_address,
        username=player.username,
        avatar_url=player.avatar_url,
        is_online=player.is_online,
        phone_number=player.phone_number,
        sms_notifications_enabled=player.sms_notifications_enabled,
        created_at=player.created_at,
    )


def _friend_entry(player: Player) -> FriendEntry:
    return FriendEntry(
        id=str(player.id),
        wallet_address=player.wallet_address,
        username=player.username,
        avatar_url=player.avatar_url,
        is_online=player.is_online,
    )


@router.post("/players", response_model=PlayerResponse)
async def connect_wallet(req: PlayerRequest):
    """Sign in with a wallet, registering it on first use."""
    return _player_response(await players.get_or_create_player(req.wallet_address))


# Declared before /players/{wallet} so "by-phone" is not read as a wallet.
@router.get("/players/by-phone/{phone}", response_model=PlayerResponse)
async def player_by_phone(phone: str):
    return _player_response(await players.find_by_phone(phone))


@router.get("/players/{wallet}", response_model=PlayerResponse)
async def get_player(wallet: str):
    return _player_response(await players.get_player(wallet))


@router.put("/players/{wallet}", response_model=PlayerResponse)
async def update_profile(wallet: str, req: UpdateProfileRequest):
    player = await players.update_profile(wallet, username=req.username, avatar_url=req.avatar_url)
    return _player_response(player)


@router.post("/players/{wallet}/presence", response_model=PlayerResponse)
async def set_presence(wallet: str, req: PresenceRequest):
    return _player_response(await players.set_presence(wallet, req.online))


@router.put("/players/{wallet}/sms-preferences", response_model=PlayerResponse)
async def update_sms_preferences(wallet: str, req: SmsPreferencesRequest):
    player = await players.update_sms_preferences(wallet, req.enabled, phone_number=req.phone_number)
    return _player_response(player)


@router.get("/players/{wallet}/stats", response_model=PlayerStatsResponse)
async def player_stats(wallet: str):
    return await stats.player_summary(wallet)


@router.get("/players/{wallet}/history", response_model=List[HistoryEntry])
async def player_history(wallet: str, limit: int = Query(default=stats.DEFAULT_HISTORY_LIMIT, ge=1, le=100)):
    return await stats.player_history(wallet, limit)


# -----------------------------
# Friends
# -----------------------------

@router.get("/players/{wallet}/friends", response_model=List[FriendEntry])
async def list_friends(wallet: str):
    return [_friend_entry(p) for p in await players.list_friends(wallet)]


@router.post("/players/{wallet}/friends", response_model=FriendEntry, status_code=status.HTTP_201_CREATED)
async def add_friend(wallet: str, req: FriendRequest):
    return _friend_entry(await players.add_friend(wallet, req.friend_wallet))


@router.delete("/players/{wallet}/friends/{friend_wallet}")
async def remove_friend(wallet: str, friend_wallet: str) -> Dict[str, bool]:
    return {"success": True, "removed": await players.remove_friend(wallet, friend_wallet)}


__all__ = ["router"]
