"""Per-game-type rules.

Framework-agnostic: every function works on plain JSON-style dicts, so the
session layer can seed, validate and inspect stored states without knowing
which game is being played.  A :class:`GameType` tag selects the variant.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

from .constants import GameType
from .errors import InvalidMove

BOARD_SIZE = 8
RED = "red"
BLACK = "black"


def owner_color(player_id: object) -> str:
    """Colour a player moves, derived from their id.

    NOTE: this is a hash of the id rather than the seat stored in the state
    (``redPlayer`` / ``blackPlayer``), so two players can land on the same
    colour.
    """
    total = sum(ord(ch) for ch in str(player_id))
    return RED if total % 2 == 0 else BLACK


def _square(value: Any) -> Optional[Tuple[int, int]]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return None
    row, col = value
    for coord in (row, col):
        if isinstance(coord, bool) or not isinstance(coord, int):
            return None
        if not 0 <= coord < BOARD_SIZE:
            return None
    return row, col


def _valid_board(board: Any) -> bool:
    return (
        isinstance(board, list)
        and len(board) == BOARD_SIZE
        and all(isinstance(row, list) and len(row) == BOARD_SIZE for row in board)
    )


def count_pieces(board: Any) -> Dict[str, int]:
    """Return ``{"red": n, "black": m}`` for a checkers board."""
    counts = {RED: 0, BLACK: 0}
    if not _valid_board(board):
        return counts
    for row in board:
        for cell in row:
            if isinstance(cell, dict) and cell.get("type") in counts:
                counts[cell["type"]] += 1
    return counts


class GameRules:
    """Default variant: empty seed, no move validation, never terminal."""

    game_type: GameType

    def __init__(self, game_type: GameType):
        self.game_type = game_type

    def seed(self, players: Sequence[str]) -> Dict[str, Any]:
        return {}

    def validate_move(self, previous: Dict[str, Any], move: Dict[str, Any], player_id: object) -> None:
        return None

    def winner(self, state: Dict[str, Any]) -> Optional[str]:
        return None


class CheckersRules(GameRules):
    def __init__(self) -> None:
        super().__init__(GameType.CHECKERS)

    def seed(self, players: Sequence[str]) -> Dict[str, Any]:
        """Standard opening: black on rows 0-2, red on rows 5-7, dark squares only."""
        board: List[List[Optional[Dict[str, Any]]]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
        for row in range(BOARD_SIZE):
            if 3 <= row <= 4:
                continue
            colour = BLACK if row < 3 else RED
            for col in range(BOARD_SIZE):
                if (row + col) % 2 == 1:
                    board[row][col] = {"type": colour, "isKing": False}

        return {
            "board": board,
            "currentPlayer": RED,
            "redPlayer": players[0] if len(players) > 0 else None,
            "blackPlayer": players[1] if len(players) > 1 else None,
            "gameStatus": "active",
            "winner": None,
            "lastMove": None,
        }

    def validate_move(self, previous: Dict[str, Any], move: Dict[str, Any], player_id: object) -> None:
        """Bounds, ownership and turn checks against the *previous* state."""
        src = _square(move.get("from"))
        dst = _square(move.get("to"))
        if src is None or dst is None:
            raise InvalidMove("Move is outside the board")

        board = previous.get("board")
        if not _valid_board(board):
            raise InvalidMove("No board to move on")

        piece = board[src[0]][src[1]]
        if not isinstance(piece, dict) or piece.get("type") not in (RED, BLACK):
            raise InvalidMove("No piece on the source square")

        colour = owner_color(player_id)
        if piece["type"] != colour:
            raise InvalidMove("That piece belongs to the other side", color=colour)

        current = previous.get("currentPlayer")
        if current and current != colour:
            raise InvalidMove("Not your turn", color=colour, current_player=current)

    def winner(self, state: Dict[str, Any]) -> Optional[str]:
        counts = count_pieces(state.get("board"))
        if counts[RED] == 0 and counts[BLACK] > 0:
            return BLACK
        if counts[BLACK] == 0 and counts[RED] > 0:
            return RED
        return None


RULES: Dict[GameType, GameRules] = {
    GameType.CHECKERS: CheckersRules(),
    GameType.BATTLESHIP: GameRules(GameType.BATTLESHIP),
    GameType.STRATEGO: GameRules(GameType.STRATEGO),
}


def rules_for(game_type: GameType) -> GameRules:
    return RULES[GameType(game_type)]


__all__ = [
    "BOARD_SIZE",
    "RED",
    "BLACK",
    "owner_color",
    "count_pieces",
    "GameRules",
    "CheckersRules",
    "RULES",
    "rules_for",
]
