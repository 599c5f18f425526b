from decimal import Decimal
from enum import Enum


class GameType(str, Enum):
    CHECKERS = "checkers"
    BATTLESHIP = "battleship"
    STRATEGO = "stratego"


class GameStatus(str, Enum):
    WAITING = "waiting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ParticipantStatus(str, Enum):
    INVITED = "invited"
    WAITING = "waiting"
    READY = "ready"
    ACTIVE = "active"
    COMPLETED = "completed"


class GameResult(str, Enum):
    WIN = "win"
    LOSS = "loss"


class FriendshipStatus(str, Enum):
    ACCEPTED = "accepted"


# Fixed platform cut of every pot; not configurable per game.
PLATFORM_FEE_RATE = Decimal("0.04")

# SOL has 9 fractional digits (1 SOL = 10**9 lamports).
LAMPORT = Decimal("0.000000001")

MIN_PLAYERS = 2

# Lobbies that never fill up are pruned after this many minutes.
DEFAULT_STALE_LOBBY_MINUTES = 60

CHAT_HISTORY_LIMIT = 50

# Players not seen for this long are shown offline.
ONLINE_WINDOW_MINUTES = 5
MAX_CHAT_MESSAGE_LENGTH = 1000

__all__ = [
    "GameType",
    "GameStatus",
    "ParticipantStatus",
    "GameResult",
    "FriendshipStatus",
    "PLATFORM_FEE_RATE",
    "LAMPORT",
    "MIN_PLAYERS",
    "DEFAULT_STALE_LOBBY_MINUTES",
    "CHAT_HISTORY_LIMIT",
    "ONLINE_WINDOW_MINUTES",
    "MAX_CHAT_MESSAGE_LENGTH",
]
