"""Domain error taxonomy.

Lifecycle code raises these; ``cryptoboards.app`` turns them into JSON
responses of the form ``{"error": ..., "code": ...}`` at the route boundary.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class BoardsError(Exception):
    """Base class for every error surfaced to API clients."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


# -----------------------------
# Categories
# -----------------------------

class NotFound(BoardsError):
    status_code = 404
    default_message = "Not found"


class InvalidInput(BoardsError):
    status_code = 400
    default_message = "Missing or invalid fields"


class Conflict(BoardsError):
    status_code = 409
    default_message = "Operation not allowed in the current state"


class VerificationFailed(BoardsError):
    status_code = 402
    default_message = "Verification failed"


class Internal(BoardsError):
    status_code = 500


# -----------------------------
# Missing entities
# -----------------------------

class LobbyNotFound(NotFound):
    default_message = "Lobby not found"


class GameNotFound(NotFound):
    default_message = "Game not found"


class PlayerNotFound(NotFound):
    default_message = "Player not found"


class StateNotFound(NotFound):
    default_message = "Game state not found"


# -----------------------------
# Invalid input
# -----------------------------

class InvalidMove(InvalidInput):
    default_message = "Invalid move"


# -----------------------------
# State conflicts
# -----------------------------

class NotAcceptingPlayers(Conflict):
    default_message = "Lobby is not accepting players"


class LobbyFull(Conflict):
    default_message = "Lobby is full"


class AlreadyReady(Conflict):
    default_message = "You are already ready in this lobby"


class AlreadyPaid(Conflict):
    default_message = "Already paid"


class SignatureAlreadyUsed(Conflict):
    default_message = "Transaction signature already used"


class NotInLobby(Conflict):
    default_message = "Player not in lobby"


class CannotCancelStarted(Conflict):
    default_message = "Cannot cancel a game that has already started"


class AlreadyStarted(Conflict):
    default_message = "Game already started"


class NotAllReady(Conflict):
    default_message = "Not all players are ready"


class InsufficientPlayers(Conflict):
    default_message = "Need at least 2 players to start"


class PlayerNotInGame(Conflict):
    default_message = "Player is not part of this game"


class GameNotInProgress(Conflict):
    default_message = "Game is not in progress"


class AlreadyCompleted(Conflict):
    default_message = "Game already completed"


class NoWinnerDeclared(Conflict):
    default_message = "Game is not completed or no winner declared"


class UsernameTaken(Conflict):
    default_message = "Username already taken"


# -----------------------------
# External verification / transfers
# -----------------------------

class InvalidSignature(VerificationFailed):
    default_message = "Transaction could not be verified"


class PayoutFailed(Internal):
    default_message = "Payout failed"


class RefundFailed(Internal):
    default_message = "Refund failed"


__all__ = [
    "BoardsError",
    "NotFound",
    "InvalidInput",
    "Conflict",
    "VerificationFailed",
    "Internal",
    "LobbyNotFound",
    "GameNotFound",
    "PlayerNotFound",
    "StateNotFound",
    "InvalidMove",
    "NotAcceptingPlayers",
    "LobbyFull",
    "AlreadyReady",
    "AlreadyPaid",
    "SignatureAlreadyUsed",
    "NotInLobby",
    "CannotCancelStarted",
    "AlreadyStarted",
    "NotAllReady",
    "InsufficientPlayers",
    "PlayerNotInGame",
    "GameNotInProgress",
    "AlreadyCompleted",
    "NoWinnerDeclared",
    "UsernameTaken",
    "InvalidSignature",
    "PayoutFailed",
    "RefundFailed",
]
