from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..realtime import subscribe, unsubscribe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ws"])


@router.websocket("/ws/games/{game_id}")
async def game_ws_endpoint(ws: WebSocket, game_id: str):
    """Subscribe to ``started`` / ``state`` / ``completed`` pushes for one game."""
    await ws.accept()
    subscribe(game_id, ws)
    logger.debug("Subscriber connected", extra={"game_id": game_id})
    try:
        while True:
            # Inbound frames are ignored; the loop only waits for disconnect.
            await ws.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe(game_id, ws)


__all__ = ["router"]
