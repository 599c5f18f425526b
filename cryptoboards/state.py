"""Centralised in-process runtime state.

Keeps the singletons shared across the application (per-game locks and
websocket subscriptions) so other modules can import them without
worrying about circular imports.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Set

from fastapi import WebSocket

# game_id -> lock serialising lifecycle operations on that game
game_locks: Dict[str, asyncio.Lock] = {}

# game_id -> number of holders plus waiters of that lock
lock_users: Dict[str, int] = {}

# game_id -> websockets subscribed to state / lifecycle pushes
game_connections: Dict[str, Set[WebSocket]] = {}


@asynccontextmanager
async def game_lock(game_id: object) -> AsyncIterator[None]:
    """Hold the lock guarding *game_id*.

    The lock is created on first use and forgotten once nobody holds or
    waits for it, so the registry only contains games with work in flight.
    """
    key = str(game_id)
    lock = game_locks.get(key)
    if lock is None:
        lock = game_locks[key] = asyncio.Lock()
    lock_users[key] = lock_users.get(key, 0) + 1
    try:
        async with lock:
            yield
    finally:
        lock_users[key] -= 1
        if lock_users[key] == 0:
            del lock_users[key]
            game_locks.pop(key, None)


__all__ = ["game_locks", "lock_users", "game_connections", "game_lock"]
