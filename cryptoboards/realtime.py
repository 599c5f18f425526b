"""Helpers for pushing lifecycle and state updates to websocket subscribers."""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import WebSocket

from .state import game_connections

logger = logging.getLogger(__name__)


def subscribe(game_id: str, ws: WebSocket) -> None:
    game_connections.setdefault(str(game_id), set()).add(ws)


def unsubscribe(game_id: str, ws: WebSocket) -> None:
    subscribers = game_connections.get(str(game_id))
    if subscribers is None:
        return
    subscribers.discard(ws)
    if not subscribers:
        game_connections.pop(str(game_id), None)


async def broadcast_game(game_id: object, payload: Dict[str, Any]) -> int:
    """Push *payload* to every subscriber of *game_id*; return how many got it."""
    subscribers = game_connections.get(str(game_id))
    if not subscribers:
        return 0

    delivered = 0
    for ws in list(subscribers):
        try:
            await ws.send_json(payload)
            delivered += 1
        except Exception:
            # Client disconnected unexpectedly
            logger.debug("Dropping dead subscriber", extra={"game_id": str(game_id)})
            unsubscribe(str(game_id), ws)
    return delivered


__all__ = ["subscribe", "unsubscribe", "broadcast_game"]
