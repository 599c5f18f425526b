"""Lobby manager: creating, joining, leaving and starting games.

Every mutating operation holds the per-game lock from ``cryptoboards.state``
and writes inside a database transaction, so participant counts and status
checks cannot interleave with another request for the same lobby. Cancel
settles refunds before that transaction opens.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

from tortoise import timezone
from tortoise.transactions import in_transaction

from .constants import DEFAULT_STALE_LOBBY_MINUTES, MIN_PLAYERS, GameStatus, GameType, ParticipantStatus
from .errors import (
    AlreadyReady,
    AlreadyStarted,
    CannotCancelStarted,
    InsufficientPlayers,
    InvalidInput,
    LobbyFull,
    LobbyNotFound,
    NotAcceptingPlayers,
    NotAllReady,
    NotInLobby,
    PlayerNotFound,
)
from .game_rules import rules_for
from .models import Game, GameParticipant, GameRefund, GameState, Player
from .notifications import NotificationKind, Notifier, notify_player
from .players import clean_wallet, get_or_create_player
from .realtime import broadcast_game
from .schemas import LobbyDetail, LobbySummary, ParticipantSummary
from .settlement import refund, to_lamports
from .solana import SolanaClient
from .state import game_lock

logger = logging.getLogger(__name__)


@dataclass
class JoinResult:
    status: ParticipantStatus
    message: str
    entry_fee: Decimal


@dataclass
class CancelResult:
    message: str
    lobby_deleted: bool
    remaining_players: int = 0
    refunds: List[GameRefund] = field(default_factory=list)


@dataclass
class StartResult:
    game: Game
    state: GameState


# ---------------------------------------------------------------------------
# Read helpers
# ---------------------------------------------------------------------------

async def _participants(game: Game) -> List[GameParticipant]:
    return await (
        GameParticipant.filter(game=game)
        .order_by("joined_at")
        .prefetch_related("player")
    )


def _summary_fields(game: Game, participant_count: int, viewer_status: Optional[ParticipantStatus]) -> Dict:
    return dict(
        id=str(game.id),
        game_type=game.game_type,
        status=game.status,
        max_players=game.max_players,
        entry_fee=to_lamports(game.entry_fee),
        is_private=game.is_private,
        created_at=game.created_at,
        creator_name=game.creator.username,
        creator_wallet=game.creator.wallet_address,
        current_players=participant_count,
        player_status=viewer_status,
    )


async def get_lobby(lobby_id: str) -> LobbyDetail:
    game = await Game.filter(id=lobby_id).prefetch_related("creator").first()
    if game is None:
        raise LobbyNotFound()
    participants = await _participants(game)
    return LobbyDetail(
        **_summary_fields(game, len(participants), None),
        started_at=game.started_at,
        ended_at=game.ended_at,
        participants=[
            ParticipantSummary(
                player_id=str(p.player.id),
                wallet_address=p.player.wallet_address,
                username=p.player.username,
                status=p.status,
                is_winner=p.is_winner,
                joined_at=p.joined_at,
            )
            for p in participants
        ],
    )


async def _delete_lobby(game: Game) -> None:
    await GameState.filter(game=game).delete()
    await GameParticipant.filter(game=game).delete()
    await game.delete()


async def prune_lobbies(stale_minutes: int = DEFAULT_STALE_LOBBY_MINUTES) -> int:
    """Delete empty waiting lobbies and unpaid ones older than *stale_minutes*.

    Stale lobbies holding a paid (``ready``) participant are kept; their
    creator has to cancel them so the entry fees get refunded.
    """
    cutoff = timezone.now() - timedelta(minutes=stale_minutes)
    waiting = await Game.filter(status=GameStatus.WAITING)
    if not waiting:
        return 0

    ids = [g.id for g in waiting]
    occupied = {str(v) for v in await GameParticipant.filter(game_id__in=ids).values_list("game_id", flat=True)}
    paid = {
        str(v)
        for v in await GameParticipant.filter(game_id__in=ids, status=ParticipantStatus.READY)
        .values_list("game_id", flat=True)
    }
    stale = {
        str(v)
        for v in await Game.filter(id__in=ids, created_at__lt=cutoff).values_list("id", flat=True)
    }

    pruned = 0
    for game in waiting:
        key = str(game.id)
        if key in occupied and (key not in stale or key in paid):
            continue
        async with game_lock(game.id):
            async with in_transaction():
                await _delete_lobby(game)
        pruned += 1

    if pruned:
        logger.info("Cleaned up %d empty or stale lobbies", pruned)
    return pruned


async def list_lobbies(
    wallet_address: str,
    stale_minutes: int = DEFAULT_STALE_LOBBY_MINUTES,
) -> List[LobbySummary]:
    """Lobbies visible to *wallet_address*, newest first.

    That is every public waiting lobby plus any lobby the wallet created or
    sits in (including its in-progress games).
    """
    await prune_lobbies(stale_minutes)

    player = await Player.get_or_none(wallet_address=clean_wallet(wallet_address))
    if player is None:
        return []

    memberships: Dict[str, ParticipantStatus] = {
        str(game_id): status
        for game_id, status in await GameParticipant.filter(player=player).values_list("game_id", "status")
    }

    games = await (
        Game.filter(status__in=[GameStatus.WAITING, GameStatus.IN_PROGRESS])
        .order_by("-created_at")
        .prefetch_related("creator")
    )

    result: List[LobbySummary] = []
    for game in games:
        member_status = memberships.get(str(game.id))
        is_member = member_status is not None
        if game.status == GameStatus.IN_PROGRESS and not is_member:
            continue
        if not (is_member or game.creator_id == player.id or not game.is_private):
            continue
        count = await GameParticipant.filter(game=game).count()
        if count == 0:
            continue
        result.append(LobbySummary(**_summary_fields(game, count, member_status)))
    return result


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

async def create_lobby(
    creator_wallet: str,
    game_type: GameType,
    entry_fee: Decimal,
    max_players: int = MIN_PLAYERS,
    is_private: bool = False,
    invited_wallets: Iterable[str] = (),
    notifier: Optional[Notifier] = None,
    app_url: str = "",
) -> Game:
    """Open a ``waiting`` lobby with the creator seated and invitees ``invited``."""
    try:
        game_type = GameType(game_type)
    except ValueError:
        raise InvalidInput(f"Unknown game type: {game_type}")
    try:
        fee = to_lamports(entry_fee)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInput("Entry fee must be a number")
    if fee <= 0:
        raise InvalidInput("Entry fee must be positive")
    if max_players < MIN_PLAYERS:
        raise InvalidInput(f"A lobby needs room for at least {MIN_PLAYERS} players")

    creator = await get_or_create_player(creator_wallet)

    invited: List[str] = []
    for wallet in invited_wallets:
        wallet = clean_wallet(wallet)
        if wallet != creator.wallet_address and wallet not in invited:
            invited.append(wallet)
    if 1 + len(invited) > max_players:
        raise InvalidInput("Too many invited players for this lobby", max_players=max_players)
    invitees = [await get_or_create_player(wallet) for wallet in invited]

    async with in_transaction():
        game = await Game.create(
            game_type=game_type,
            status=GameStatus.WAITING,
            max_players=max_players,
            entry_fee=fee,
            is_private=is_private or bool(invitees),
            creator=creator,
        )
        await GameParticipant.create(game=game, player=creator, status=ParticipantStatus.WAITING)
        for invitee in invitees:
            await GameParticipant.create(game=game, player=invitee, status=ParticipantStatus.INVITED)

    logger.info(
        "Created %s lobby with %s SOL entry fee", game_type.value, fee,
        extra={"game_id": str(game.id), "wallet": creator.wallet_address},
    )

    if notifier is not None:
        for invitee in invitees:
            await notify_player(notifier, invitee, NotificationKind.GAME_INVITATION, {
                "inviter_name": creator.username,
                "game_type": game_type.value,
                "entry_fee": fee,
                "lobby_id": str(game.id),
                "app_url": app_url,
            })
    return game


async def join_lobby(lobby_id: str, wallet_address: str) -> JoinResult:
    if not await Game.filter(id=lobby_id).exists():
        raise LobbyNotFound()
    player = await get_or_create_player(wallet_address)

    async with game_lock(lobby_id):
        async with in_transaction():
            game = await Game.filter(id=lobby_id).select_for_update().first()
            if game is None:
                raise LobbyNotFound()
            if game.status != GameStatus.WAITING:
                raise NotAcceptingPlayers(
                    f"Lobby is not accepting players (status: {game.status.value})",
                    actual_status=game.status.value,
                )

            fee = to_lamports(game.entry_fee)
            existing = await GameParticipant.get_or_none(game=game, player=player)
            if existing is not None:
                if existing.status == ParticipantStatus.READY:
                    raise AlreadyReady()
                if existing.status == ParticipantStatus.INVITED:
                    existing.status = ParticipantStatus.WAITING
                    await existing.save(update_fields=["status"])
                    return JoinResult(
                        ParticipantStatus.WAITING,
                        "Welcome! Please pay the entry fee to become ready.",
                        fee,
                    )
                return JoinResult(existing.status, "Welcome back to the lobby!", fee)

            count = await GameParticipant.filter(game=game).count()
            if count >= game.max_players:
                raise LobbyFull(
                    f"Lobby is full ({count}/{game.max_players})",
                    current_players=count,
                    max_players=game.max_players,
                )
            await GameParticipant.create(game=game, player=player, status=ParticipantStatus.WAITING)

    logger.info("Player joined lobby", extra={"game_id": str(lobby_id), "wallet": player.wallet_address})
    return JoinResult(
        ParticipantStatus.WAITING,
        "Joined lobby successfully. Please pay the entry fee to become ready.",
        fee,
    )


async def cancel(lobby_id: str, wallet_address: str, solana: SolanaClient) -> CancelResult:
    """Creator: refund paid players and delete the lobby.  Others: leave it.

    Each refund is committed on its own before anything is deleted. If a
    transfer fails the lobby stays as it was, and a retry only pays the
    wallets that have no refund row yet.
    """
    async with game_lock(lobby_id):
        game = await Game.get_or_none(id=lobby_id)
        if game is None:
            raise LobbyNotFound()
        player = await Player.get_or_none(wallet_address=clean_wallet(wallet_address))
        if player is None:
            raise PlayerNotFound()
        if game.status in (GameStatus.IN_PROGRESS, GameStatus.COMPLETED):
            raise CannotCancelStarted()

        participants = await _participants(game)
        is_creator = game.creator_id == player.id
        mine = next((p for p in participants if p.player_id == player.id), None)
        if is_creator:
            leaving = participants
        elif mine is None:
            raise NotInLobby("Player was not in this lobby")
        else:
            leaving = [mine]

        refunds: List[GameRefund] = []
        for participant in leaving:
            if participant.status == ParticipantStatus.READY:
                refunds.append(
                    await refund(game.id, participant.player.wallet_address, game.entry_fee, solana)
                )

        async with in_transaction():
            if is_creator:
                await _delete_lobby(game)
                result = CancelResult("Lobby cancelled", lobby_deleted=True, refunds=refunds)
            else:
                await GameParticipant.filter(id=mine.id).delete()
                remaining = await GameParticipant.filter(game=game).count()
                if remaining == 0:
                    await _delete_lobby(game)
                    result = CancelResult("Left game and removed empty lobby", lobby_deleted=True, refunds=refunds)
                else:
                    result = CancelResult(
                        "Successfully left the game",
                        lobby_deleted=False,
                        remaining_players=remaining,
                        refunds=refunds,
                    )

    logger.info(
        "Cancel processed (lobby deleted: %s, refunds: %d)", result.lobby_deleted, len(result.refunds),
        extra={"game_id": str(lobby_id), "wallet": wallet_address},
    )
    return result


async def start(lobby_id: str, notifier: Optional[Notifier] = None, app_url: str = "") -> StartResult:
    """Move a fully paid lobby to ``in_progress`` and seed its first state."""
    async with game_lock(lobby_id):
        async with in_transaction():
            game = await Game.filter(id=lobby_id).select_for_update().first()
            if game is None:
                raise LobbyNotFound()
            if game.status != GameStatus.WAITING:
                raise AlreadyStarted(actual_status=game.status.value)

            participants = await _participants(game)
            if len(participants) < MIN_PLAYERS:
                raise InsufficientPlayers(player_count=len(participants))
            ready_count = sum(1 for p in participants if p.status == ParticipantStatus.READY)
            if ready_count < len(participants):
                raise NotAllReady(ready_count=ready_count, total_count=len(participants))

            started_at = timezone.now()
            flipped = await Game.filter(id=game.id, status=GameStatus.WAITING).update(
                status=GameStatus.IN_PROGRESS, started_at=started_at
            )
            if not flipped:
                raise AlreadyStarted()
            await GameParticipant.filter(game=game).update(status=ParticipantStatus.ACTIVE)

            seed = rules_for(game.game_type).seed([str(p.player_id) for p in participants])
            state = await GameState.create(game=game, state=seed)

    game.status = GameStatus.IN_PROGRESS
    game.started_at = started_at
    logger.info("Game started", extra={"game_id": str(game.id)})

    if notifier is not None:
        for participant in participants:
            await notify_player(notifier, participant.player, NotificationKind.GAME_STARTING, {
                "game_type": game.game_type.value,
                "game_id": str(game.id),
                "app_url": app_url,
            })
    await broadcast_game(game.id, {
        "type": "started",
        "game_id": str(game.id),
        "state_id": state.id,
        "state": seed,
    })
    return StartResult(game=game, state=state)


__all__ = [
    "JoinResult",
    "CancelResult",
    "StartResult",
    "get_lobby",
    "prune_lobbies",
    "list_lobbies",
    "create_lobby",
    "join_lobby",
    "cancel",
    "start",
]
