"""Pydantic request / response schemas for the HTTP API.

Amounts are :class:`~decimal.Decimal` and serialise as strings so that no
lamport precision is lost in transit.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .constants import GameStatus, GameType, ParticipantStatus

# -----------------------------
# Players & friends
# -----------------------------

class PlayerRequest(BaseModel):
    wallet_address: str


class PlayerResponse(BaseModel):
    id: str
    wallet_address: str
    username: str
    avatar_url: str = ""
    is_online: bool = False
    phone_number: Optional[str] = None
    sms_notifications_enabled: bool = False
    created_at: Optional[datetime] = None


class UpdateProfileRequest(BaseModel):
    username: Optional[str] = None
    avatar_url: Optional[str] = None


class PresenceRequest(BaseModel):
    online: bool


class SmsPreferencesRequest(BaseModel):
    enabled: bool
    phone_number: Optional[str] = None


class FriendRequest(BaseModel):
    friend_wallet: str


class FriendEntry(BaseModel):
    id: str
    wallet_address: str
    username: str
    avatar_url: str = ""
    is_online: bool = False


# -----------------------------
# Lobbies
# -----------------------------

class CreateLobbyRequest(BaseModel):
    creator_wallet: str
    game_type: GameType
    entry_fee: Decimal = Field(gt=0, max_digits=18, decimal_places=9)
    max_players: int = Field(default=2, ge=2, le=8)
    is_private: bool = False
    invited_wallets: List[str] = Field(default_factory=list)


class WalletRequest(BaseModel):
    wallet_address: Optional[str] = None


class PayRequest(BaseModel):
    wallet_address: Optional[str] = None
    transaction_signature: Optional[str] = None


class ParticipantSummary(BaseModel):
    player_id: str
    wallet_address: str
    username: str
    status: ParticipantStatus
    is_winner: Optional[bool] = None
    joined_at: Optional[datetime] = None


class LobbySummary(BaseModel):
    id: str
    game_type: GameType
    status: GameStatus
    max_players: int
    entry_fee: Decimal
    is_private: bool
    created_at: Optional[datetime] = None
    creator_name: str
    creator_wallet: str
    current_players: int
    # Status of the requesting wallet inside this lobby, if any.
    player_status: Optional[ParticipantStatus] = None


class LobbyDetail(LobbySummary):
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    participants: List[ParticipantSummary] = []


class JoinResponse(BaseModel):
    success: bool = True
    message: str
    entry_fee: Decimal
    status: ParticipantStatus


class PayResponse(BaseModel):
    success: bool = True
    message: str
    entry_fee: Decimal
    ready_count: int
    total_count: int


class StartResponse(BaseModel):
    success: bool = True
    message: str
    game_id: str
    game_type: GameType
    state_id: int


class RefundEntry(BaseModel):
    wallet_address: str
    amount: Decimal
    transaction_signature: str


class CancelResponse(BaseModel):
    success: bool = True
    message: str
    lobby_deleted: bool
    remaining_players: int = 0
    refunds: List[RefundEntry] = []


# -----------------------------
# Game session & settlement
# -----------------------------

class GameStateResponse(BaseModel):
    game_id: str
    state_id: int
    current_state: Dict[str, Any]
    last_updated: Optional[datetime] = None


class UpdateStateRequest(BaseModel):
    player_id: str
    new_state: Dict[str, Any]
    # {"from": [row, col], "to": [row, col]}
    move: Optional[Dict[str, Any]] = None


class UpdateStateResponse(BaseModel):
    success: bool = True
    state_id: int
    game_ended: bool
    winner: Optional[str] = None


class CompleteRequest(BaseModel):
    winner_wallet: Optional[str] = None
    loser_wallet: Optional[str] = None


class CompleteResponse(BaseModel):
    success: bool = True
    game_id: str
    winner: str
    loser: str
    total_pot: Decimal
    platform_fee: Decimal
    winner_amount: Decimal


class PayoutResponse(BaseModel):
    success: bool = True
    game_id: str
    winner_wallet: str
    total_pot: Decimal
    platform_fee: Decimal
    amount: Decimal
    transaction_signature: str
    fee_wallet: str
    already_processed: bool = False


# -----------------------------
# Stats & history
# -----------------------------

class GameTypeStats(BaseModel):
    total: int = 0
    wins: int = 0
    losses: int = 0
    winnings: Decimal = Decimal("0")
    loss_amount: Decimal = Decimal("0")


class PlayerStatsResponse(BaseModel):
    wallet_address: str
    username: str
    total_games: int
    wins: int
    losses: int
    win_rate: float
    total_winnings: Decimal
    total_losses: Decimal
    net: Decimal
    current_streak: int
    streak_type: str  # win | loss | none
    best_win_streak: int
    by_game_type: Dict[str, GameTypeStats] = {}


class HistoryEntry(BaseModel):
    game_id: str
    game_type: GameType
    result: str
    amount: Decimal
    opponent_username: Optional[str] = None
    opponent_wallet: Optional[str] = None
    created_at: Optional[datetime] = None


class FeedEntry(BaseModel):
    game_id: str
    game_type: GameType
    winner_username: str
    winner_wallet: str
    amount: Decimal
    created_at: Optional[datetime] = None


# -----------------------------
# Chat
# -----------------------------

class ChatMessageRequest(BaseModel):
    wallet_address: str
    content: str
    message_type: str = "text"
    recipient_wallet: Optional[str] = None


class ChatMessageResponse(BaseModel):
    id: int
    sender_wallet: str
    sender_username: str
    sender_avatar: str = ""
    recipient_wallet: Optional[str] = None
    content: str
    message_type: str
    is_global: bool
    created_at: datetime


class ChatUserEntry(BaseModel):
    id: str
    wallet_address: str
    username: str
    avatar_url: str = ""
    is_online: bool
    last_seen: Optional[datetime] = None
    is_friend: bool


__all__ = [
    "PlayerRequest",
    "PlayerResponse",
    "UpdateProfileRequest",
    "PresenceRequest",
    "SmsPreferencesRequest",
    "FriendRequest",
    "FriendEntry",
    "CreateLobbyRequest",
    "WalletRequest",
    "PayRequest",
    "ParticipantSummary",
    "LobbySummary",
    "LobbyDetail",
    "JoinResponse",
    "PayResponse",
    "StartResponse",
    "RefundEntry",
    "CancelResponse",
    "GameStateResponse",
    "UpdateStateRequest",
    "UpdateStateResponse",
    "CompleteRequest",
    "CompleteResponse",
    "PayoutResponse",
    "GameTypeStats",
    "PlayerStatsResponse",
    "HistoryEntry",
    "FeedEntry",
    "ChatMessageRequest",
    "ChatMessageResponse",
    "ChatUserEntry",
]
