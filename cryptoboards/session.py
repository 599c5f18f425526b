"""Game session: the append-only state log of an in-progress game."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tortoise import timezone
from tortoise.transactions import in_transaction

from .constants import GameStatus, ParticipantStatus
from .errors import GameNotFound, GameNotInProgress, InvalidInput, PlayerNotInGame, StateNotFound
from .game_rules import rules_for
from .models import Game, GameParticipant, GameState
from .realtime import broadcast_game
from .state import game_lock

logger = logging.getLogger(__name__)


@dataclass
class StateUpdateResult:
    state_id: int
    game_ended: bool
    winner: Optional[str] = None


async def _game_or_404(game_id: str) -> Game:
    game = await Game.get_or_none(id=game_id)
    if game is None:
        raise GameNotFound()
    return game


async def get_state(game_id: str) -> GameState:
    """Newest state row of *game_id*."""
    game = await _game_or_404(game_id)
    state = await GameState.filter(game=game).order_by("-id").first()
    if state is None:
        raise StateNotFound()
    return state


async def get_history(game_id: str) -> List[GameState]:
    game = await _game_or_404(game_id)
    return await GameState.filter(game=game).order_by("id")


async def update_state(
    game_id: str,
    player_id: str,
    new_state: Dict[str, Any],
    move: Optional[Dict[str, Any]] = None,
) -> StateUpdateResult:
    """Append *new_state* on behalf of *player_id*.

    When the rules report a winner the game is completed and the acting
    player's seat is marked as the winner.
    """
    if not isinstance(new_state, dict):
        raise InvalidInput("new_state must be an object")

    ended = False
    async with game_lock(game_id):
        async with in_transaction():
            game = await Game.filter(id=game_id).select_for_update().first()
            if game is None:
                raise GameNotFound()
            participant = await GameParticipant.filter(game=game, player_id=player_id).first()
            if participant is None:
                raise PlayerNotInGame()
            if game.status != GameStatus.IN_PROGRESS:
                raise GameNotInProgress(actual_status=game.status.value)

            rules = rules_for(game.game_type)
            if move is not None:
                previous = await GameState.filter(game=game).order_by("-id").first()
                rules.validate_move(previous.state if previous else {}, move, player_id)

            state = await GameState.create(game=game, state=new_state)

            winner = rules.winner(new_state)
            if winner is not None:
                # FIXME: credits the player who made the final move, not the owner of the winning side.
                ended = bool(
                    await Game.filter(id=game.id, status=GameStatus.IN_PROGRESS).update(
                        status=GameStatus.COMPLETED, ended_at=timezone.now()
                    )
                )
                if ended:
                    await GameParticipant.filter(game=game).update(status=ParticipantStatus.COMPLETED)
                    await GameParticipant.filter(id=participant.id).update(is_winner=True)
                    await GameParticipant.filter(game=game).exclude(id=participant.id).update(is_winner=False)

    if ended:
        logger.info("Game ended, %s side won", winner, extra={"game_id": str(game.id)})
    await broadcast_game(game.id, {
        "type": "state",
        "game_id": str(game.id),
        "state_id": state.id,
        "state": new_state,
        "game_ended": ended,
        "winner": winner,
    })
    return StateUpdateResult(state_id=state.id, game_ended=ended, winner=winner)


__all__ = ["StateUpdateResult", "get_state", "get_history", "update_state"]
