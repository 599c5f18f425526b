"""Best-effort SMS notifications.

The concrete SMS provider lives outside this service; a :class:`Notifier`
implementation is injected into the app.  Every entry point here swallows
and logs delivery failures so a notification can never fail a lifecycle
operation.
"""
from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .models import Player

logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    GAME_INVITATION = "game_invitation"
    GAME_STARTING = "game_starting"
    GAME_COMPLETED = "game_completed"


@dataclass
class NotificationResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def render_message(kind: NotificationKind, context: Dict[str, Any]) -> str:
    """Return the SMS body for *kind* filled from *context*."""
    game_type = str(context.get("game_type", "game")).upper()
    app_url = str(context.get("app_url", "")).rstrip("/")

    if kind is NotificationKind.GAME_INVITATION:
        return (
            f"{context.get('inviter_name', 'A player')} invited you to play {game_type}!\n\n"
            f"Entry Fee: {context.get('entry_fee')} SOL\n"
            f"Join: {app_url}/lobby/{context.get('lobby_id')}\n\n"
            "Reply STOP to opt out."
        )
    if kind is NotificationKind.GAME_STARTING:
        return (
            f"Your {game_type} game is starting!\n\n"
            f"Play now: {app_url}/{str(context.get('game_type', '')).lower()}/{context.get('game_id')}\n\n"
            "Good luck!"
        )
    if context.get("is_winner"):
        return (
            f"Congratulations! You won your {game_type} game "
            f"and earned {context.get('winner_amount')} SOL."
        )
    return f"Your {game_type} game has ended. Better luck next time!"


class Notifier(ABC):
    """Delivery interface for outgoing SMS."""

    @abstractmethod
    async def send(self, phone_number: str, message: str) -> NotificationResult:
        ...


class LoggingNotifier(Notifier):
    """Default notifier: records the message in the log instead of sending it."""

    async def send(self, phone_number: str, message: str) -> NotificationResult:
        message_id = uuid.uuid4().hex
        logger.info("SMS to %s: %s", phone_number[-4:], message.splitlines()[0])
        return NotificationResult(success=True, message_id=message_id)


async def notify_player(
    notifier: Notifier,
    player: Player,
    kind: NotificationKind,
    context: Dict[str, Any],
) -> Optional[NotificationResult]:
    """Send *kind* to *player* if they opted in; never raises.

    Returns ``None`` when the player has no phone number or SMS disabled.
    """
    if not player.phone_number or not player.sms_notifications_enabled:
        return None
    try:
        result = await notifier.send(player.phone_number, render_message(kind, context))
    except Exception as exc:
        logger.warning(
            "Failed to send %s notification", kind.value,
            exc_info=True, extra={"wallet": player.wallet_address},
        )
        return NotificationResult(success=False, error=str(exc))
    if not result.success:
        logger.warning(
            "Notification provider rejected %s: %s", kind.value, result.error,
            extra={"wallet": player.wallet_address},
        )
    return result


__all__ = [
    "NotificationKind",
    "NotificationResult",
    "render_message",
    "Notifier",
    "LoggingNotifier",
    "notify_player",
]
